"""Binary wave format descriptions (the 40-byte extensible wave format block)."""

from __future__ import annotations

import enum
import struct
import uuid
from dataclasses import dataclass

from soundremote.audio_util import AudioFormat, SampleType

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_IEEE_FLOAT = 0x0003
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

SPEAKER_FRONT_LEFT = 0x1
SPEAKER_FRONT_RIGHT = 0x2
SPEAKER_FRONT_CENTER = 0x4
SPEAKER_MONO = SPEAKER_FRONT_CENTER
SPEAKER_STEREO = SPEAKER_FRONT_LEFT | SPEAKER_FRONT_RIGHT

# Size of the extension that follows the basic 18-byte header.
EXTENSIBLE_EXTRA_SIZE = 22

_BASE = struct.Struct("<HHIIHHH")
_EXTENSION = struct.Struct("<HI16s")
BASE_SIZE = _BASE.size
EXTENSIBLE_SIZE = _BASE.size + _EXTENSION.size


class SubFormat(enum.Enum):
    """Well-known sub-format identifiers of an extensible wave format."""

    PCM = uuid.UUID("00000001-0000-0010-8000-00aa00389b71")
    IEEE_FLOAT = uuid.UUID("00000003-0000-0010-8000-00aa00389b71")
    NONE = uuid.UUID("e436eb8e-524f-11ce-9f53-0020af0ba770")


@dataclass(frozen=True)
class WaveFormatExtensible:
    """Wave format header with the extensible part always present."""

    format_tag: int
    channels: int
    samples_per_sec: int
    avg_bytes_per_sec: int
    block_align: int
    bits_per_sample: int
    cb_size: int
    valid_bits_per_sample: int
    channel_mask: int
    sub_format: uuid.UUID

    def to_bytes(self) -> bytes:
        """Serialise to the 40-byte little-endian layout."""
        return _BASE.pack(
            self.format_tag,
            self.channels,
            self.samples_per_sec,
            self.avg_bytes_per_sec,
            self.block_align,
            self.bits_per_sample,
            self.cb_size,
        ) + _EXTENSION.pack(self.valid_bits_per_sample, self.channel_mask, self.sub_format.bytes_le)

    @classmethod
    def from_bytes(cls, data: bytes) -> WaveFormatExtensible:
        """Parse a wave format block.

        An extensible block must be at least 40 bytes long. A plain header
        (18 bytes or more) is accepted too; its sub-format is derived from the tag.
        """
        data = bytes(data)
        if len(data) < BASE_SIZE:
            raise ValueError(f"wave format needs at least {BASE_SIZE} bytes, got {len(data)}")
        tag, channels, rate, avg, align, bits, cb_size = _BASE.unpack_from(data)
        if tag == WAVE_FORMAT_EXTENSIBLE:
            if len(data) < EXTENSIBLE_SIZE:
                raise ValueError(
                    f"extensible wave format needs {EXTENSIBLE_SIZE} bytes, got {len(data)}"
                )
            valid_bits, mask, guid = _EXTENSION.unpack_from(data, BASE_SIZE)
            sub_format = uuid.UUID(bytes_le=guid)
        else:
            valid_bits, mask = bits, 0
            sub_format = {
                WAVE_FORMAT_PCM: SubFormat.PCM.value,
                WAVE_FORMAT_IEEE_FLOAT: SubFormat.IEEE_FLOAT.value,
            }.get(tag, SubFormat.NONE.value)
        return cls(tag, channels, rate, avg, align, bits, cb_size, valid_bits, mask, sub_format)


def create_wave_format(audio_format: AudioFormat) -> WaveFormatExtensible:
    """Build the extensible wave format that describes ``audio_format``."""
    channels = audio_format.channel_count
    bits = audio_format.sample_size
    block_align = channels * bits // 8
    channel_mask = {1: SPEAKER_MONO, 2: SPEAKER_STEREO}.get(channels, 0)
    sub_format = {
        SampleType.SIGNED_INT: SubFormat.PCM,
        SampleType.UNSIGNED_INT: SubFormat.PCM,
        SampleType.FLOAT: SubFormat.IEEE_FLOAT,
        SampleType.UNKNOWN: SubFormat.NONE,
    }[audio_format.sample_type]
    return WaveFormatExtensible(
        format_tag=WAVE_FORMAT_EXTENSIBLE,
        channels=channels,
        samples_per_sec=audio_format.sample_rate,
        avg_bytes_per_sec=audio_format.sample_rate * block_align,
        block_align=block_align,
        bits_per_sample=bits,
        cb_size=EXTENSIBLE_EXTRA_SIZE,
        valid_bits_per_sample=bits,
        channel_mask=channel_mask,
        sub_format=sub_format.value,
    )