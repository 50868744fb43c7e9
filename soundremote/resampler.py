"""Streaming sample-rate, channel and sample-format conversion of PCM audio."""

from __future__ import annotations

import math

import numpy as np

from soundremote.audio_util import AudioError, Location, audio_error_text
from soundremote.wave_format import SubFormat, WaveFormatExtensible

# Result code reported when a wave format cannot be turned into a media type.
MF_E_INVALIDMEDIATYPE = 0xC00D36B4

_INT_WIDTHS = (1, 2, 3, 4)
_FLOAT_DTYPES = {4: np.dtype("<f4"), 8: np.dtype("<f8")}
_INT_DTYPES = {2: np.dtype("<i2"), 4: np.dtype("<i4")}


def _sample_width(fmt: WaveFormatExtensible, where: Location) -> int:
    """Bytes per sample of ``fmt``; raises AudioError if the format is unusable."""
    usable = (
        fmt.channels > 0
        and fmt.samples_per_sec > 0
        and fmt.block_align > 0
        and fmt.block_align % fmt.channels == 0
    )
    if usable:
        width = fmt.block_align // fmt.channels
        if fmt.sub_format == SubFormat.PCM.value and width in _INT_WIDTHS:
            return width
        if fmt.sub_format == SubFormat.IEEE_FLOAT.value and width in _FLOAT_DTYPES:
            return width
    raise AudioError(audio_error_text(MF_E_INVALIDMEDIATYPE, where), MF_E_INVALIDMEDIATYPE, where)


def _decode(raw: bytes, fmt: WaveFormatExtensible, width: int) -> np.ndarray:
    """Interleaved samples as a (frames, channels) array of floats in -1.0..1.0."""
    if fmt.sub_format == SubFormat.IEEE_FLOAT.value:
        flat = np.frombuffer(raw, _FLOAT_DTYPES[width]).astype(np.float64)
    elif width == 1:
        flat = (np.frombuffer(raw, np.uint8).astype(np.float64) - 128.0) / 128.0
    elif width == 3:
        triples = np.frombuffer(raw, np.uint8).reshape(-1, 3).astype(np.int32)
        values = triples[:, 0] | (triples[:, 1] << 8) | (triples[:, 2] << 16)
        values = np.where(values & 0x800000, values - 0x1000000, values)
        flat = values.astype(np.float64) / float(1 << 23)
    else:
        flat = np.frombuffer(raw, _INT_DTYPES[width]).astype(np.float64) / float(1 << (8 * width - 1))
    return flat.reshape(-1, fmt.channels)


def _encode(frames: np.ndarray, fmt: WaveFormatExtensible, width: int) -> bytes:
    flat = frames.reshape(-1)
    if fmt.sub_format == SubFormat.IEEE_FLOAT.value:
        return flat.astype(_FLOAT_DTYPES[width]).tobytes()
    scale = 1 << (8 * width - 1)
    ints = np.clip(np.rint(flat * scale), -scale, scale - 1).astype(np.int64)
    if width == 1:
        return (ints + 128).astype(np.uint8).tobytes()
    if width == 3:
        values = ints & 0xFFFFFF
        triples = np.column_stack((values & 0xFF, (values >> 8) & 0xFF, (values >> 16) & 0xFF))
        return triples.astype(np.uint8).tobytes()
    return ints.astype(_INT_DTYPES[width]).tobytes()


def _remix(frames: np.ndarray, out_channels: int) -> np.ndarray:
    in_channels = frames.shape[1]
    if in_channels == out_channels:
        return frames
    if in_channels == 1:
        return np.repeat(frames, out_channels, axis=1)
    if out_channels == 1:
        return frames.mean(axis=1, keepdims=True)
    if in_channels > out_channels:
        return frames[:, :out_channels]
    padding = np.zeros((frames.shape[0], out_channels - in_channels))
    return np.hstack((frames, padding))


class AudioResampler:
    """Converts a stream of PCM chunks from one wave format to another.

    Converted audio is appended to ``out_buffer``. State is carried between
    calls, so splitting the input differently gives the same output.
    """

    def __init__(
        self,
        input_format: WaveFormatExtensible,
        output_format: WaveFormatExtensible,
        out_buffer: bytearray,
    ) -> None:
        self._in_format = input_format
        self._out_format = output_format
        self._in_width = _sample_width(input_format, Location.RESAMPLER_INITMEDIATYPE_INPUT)
        self._out_width = _sample_width(output_format, Location.RESAMPLER_INITMEDIATYPE_OUTPUT)
        self._out = out_buffer
        gcd = math.gcd(input_format.samples_per_sec, output_format.samples_per_sec)
        # Positions are kept exactly, in units of 1/_den input frames.
        self._step = input_format.samples_per_sec // gcd
        self._den = output_format.samples_per_sec // gcd
        self._pos = 0
        self._tail = np.zeros((0, output_format.channels))
        self._pending = b""

    def resample(self, pcm_audio: bytes) -> int:
        """Convert ``pcm_audio``, append the result to the output buffer and return its size."""
        data = self._pending + bytes(pcm_audio)
        usable = len(data) - len(data) % self._in_format.block_align
        self._pending = data[usable:]
        if not usable:
            return 0
        frames = _remix(_decode(data[:usable], self._in_format, self._in_width), self._out_format.channels)

        buffer = np.concatenate((self._tail, frames))
        last = len(buffer) - 1
        limit = last * self._den
        count = (limit - self._pos) // self._step + 1 if limit >= self._pos else 0

        written = 0
        if count:
            positions = self._pos + np.arange(count, dtype=np.int64) * self._step
            index = positions // self._den
            frac = ((positions % self._den) / self._den)[:, None]
            following = np.minimum(index + 1, last)
            converted = buffer[index] * (1.0 - frac) + buffer[following] * frac
            encoded = _encode(converted, self._out_format, self._out_width)
            self._out.extend(encoded)
            written = len(encoded)

        self._pos += count * self._step - limit
        self._tail = buffer[-1:]
        return written