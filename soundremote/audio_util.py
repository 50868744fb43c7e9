"""Audio constants, formats and error handling shared by the capture pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass

DEFAULT_RENDER_DEVICE_ID = -1
DEFAULT_CAPTURE_DEVICE_ID = -2

S_OK = 0x00000000
S_FALSE = 0x00000001
E_ACCESSDENIED = 0x80070005
E_OUTOFMEMORY = 0x8007000E
E_FAIL = 0x80004005

# Opus frame length in ms. Opus can encode frames of 2.5, 5, 10, 20, 40 or 60 ms.
OPUS_FRAME_LENGTH_MS = 10


class Compression(enum.IntEnum):
    """Bitrate a client asks audio to be compressed to; NONE means raw PCM."""

    NONE = 0
    KBPS_64 = 64_000
    KBPS_128 = 128_000
    KBPS_192 = 192_000
    KBPS_256 = 256_000
    KBPS_320 = 320_000


class OpusSampleRate(enum.IntEnum):
    """Sample rates supported by the Opus encoder."""

    KHZ_8 = 8_000
    KHZ_12 = 12_000
    KHZ_16 = 16_000
    KHZ_24 = 24_000
    KHZ_48 = 48_000


class OpusChannels(enum.IntEnum):
    """Channel layouts supported by the Opus encoder."""

    MONO = 1
    STEREO = 2


class SampleType(enum.IntEnum):
    UNKNOWN = 0
    SIGNED_INT = 1
    UNSIGNED_INT = 2
    FLOAT = 3


class ByteOrder(enum.Enum):
    LITTLE = "little"
    BIG = "big"


class Location(enum.IntEnum):
    """Identifies the operation at which an audio error happened."""

    NOWHERE = 0
    CAPTURE_COINITIALIZE = 1
    CAPTURE_COCREATEINSTANCE = 2
    CAPTURE_GETDEVICE = 3
    CAPTURE_ACTIVATE_AUDIOCLIENT = 4
    CAPTURE_QUERY_ENDPOINT = 5
    CAPTURE_ENDPOINT_GETDATAFLOW = 6
    CAPTURE_AC_ISFORMATSUPPORTED = 7
    CAPTURE_AC_GETMIXFORMAT = 8
    CAPTURE_AC_INITIALIZE_RENDER = 9
    CAPTURE_AC_INITIALIZE_CAPTURE = 10
    CAPTURE_MEMALLOC = 11
    CAPTURE_AC_GETBUFFERSIZE = 12
    CAPTURE_AC_GETSERVICE = 13
    CAPTURE_AC_START = 20
    CAPTURE_AC_STOP = 21
    CAPTURE_ACC_GETNEXTPACKETSIZE = 22
    CAPTURE_ACC_GETBUFFER = 23
    CAPTURE_ACC_RELEASEBUFFER = 24
    CAPTURE_ACTIVATE_METERINFO = 25

    RESAMPLER_COCREATEINSTANCE = 101
    RESAMPLER_QUERY_TRANSFORM = 102
    RESAMPLER_QUERY_PROPS = 103
    RESAMPLER_PROPS_SETHALFFILTERLENGTH = 104
    RESAMPLER_CREATEMEDIATYPE_INPUT = 105
    RESAMPLER_INITMEDIATYPE_INPUT = 106
    RESAMPLER_TRANSFORM_SETINPUTTYPE = 107
    RESAMPLER_CREATEMEDIATYPE_OUTPUT = 108
    RESAMPLER_INITMEDIATYPE_OUTPUT = 109
    RESAMPLER_TRANSFORM_SETOUTPUTTYPE = 110
    RESAMPLER_TRANSFORM_MESSAGE_FLUSH = 111
    RESAMPLER_TRANSFORM_MESSAGE_BEGIN = 112
    RESAMPLER_TRANSFORM_MESSAGE_START = 113
    RESAMPLER_CREATE_INPUT_BUFFER = 114
    RESAMPLER_INPUT_BUFFER_LOCK = 115
    RESAMPLER_INPUT_BUFFER_UNLOCK = 116
    RESAMPLER_INPUT_BUFFER_SETLENGTH = 117
    RESAMPLER_CREATE_INPUT_SAMPLE = 118
    RESAMPLER_INPUT_SAMPLE_ADDBUFFER = 119
    RESAMPLER_TRANSFORM_PROCESSINPUT = 120
    RESAMPLER_TRANSFORM_GETOUTPUTSTREAMINFO = 121
    RESAMPLER_CREATE_OUTPUT_BUFFER = 122
    RESAMPLER_CREATE_OUTPUT_SAMPLE = 123
    RESAMPLER_OUTPUT_SAMPLE_ADDBUFFER = 124
    RESAMPLER_TRANSFORM_PROCESSOUTPUT = 125
    RESAMPLER_OUTPUT_SAMPLE_CONVERT = 126
    RESAMPLER_PROCESSED_BUFFER_GETCURRENTLENGTH = 127
    RESAMPLER_PROCESSED_BUFFER_LOCK = 128
    RESAMPLER_PROCESSED_BUFFER_UNLOCK = 129

    ENCODER_CREATE = 202
    ENCODER_SET_BITRATE = 203
    ENCODER_ENCODE = 204

    UTIL_GETDEVICES_COINITIALIZE = 301
    UTIL_GETDEVICES_CREATE_ENUMERATOR = 302
    UTIL_GETDEVICES_ENUMERATOR_ENUMENDPOINTS = 303
    UTIL_GETDEVICES_ENDPOINTS_GETCOUNT = 304
    UTIL_GETDEVICES_DEVICES_ITEM = 305
    UTIL_GETDEVICES_DEVICE_GETID = 306
    UTIL_GETDEVICES_DEVICE_OPENPROPERTYSTORE = 307
    UTIL_GETDEVICES_PROPS_GETVALUE = 308
    UTIL_GETDEFAULTDEVICE_COINITIALIZE = 310
    UTIL_GETDEFAULTDEVICE_CREATE_ENUMERATOR = 311
    UTIL_GETDEFAULTDEVICE_ENUMERATOR_GETDEFAULTENDPOINT = 312
    UTIL_GETDEFAULTDEVICE_DEVICE_GETID = 313


@dataclass(frozen=True)
class AudioFormat:
    """Description of a PCM stream; the defaults are what clients receive."""

    sample_rate: int = 48_000
    channel_count: int = 2
    sample_size: int = 16
    sample_type: SampleType = SampleType.SIGNED_INT
    byte_order: ByteOrder = ByteOrder.LITTLE


class AudioError(RuntimeError):
    """An audio operation failed; carries the result code and its location."""

    def __init__(self, message: str, hr: int | None = None, where: Location | None = None) -> None:
        super().__init__(message)
        self.hr = hr
        self.where = where


def _signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x1_0000_0000 if value & 0x8000_0000 else value


def failed(hr: int) -> bool:
    """True if the 32-bit result code signals failure (its sign bit is set)."""
    return _signed32(hr) < 0


def audio_error_text(error_code: int, where: Location) -> str:
    """Human-readable description of an audio error."""
    if where == Location.CAPTURE_AC_INITIALIZE_CAPTURE and _signed32(error_code) == _signed32(E_ACCESSDENIED):
        return "Microphone access denied. You can change this in the system privacy settings."
    value = error_code & 0xFFFFFFFF
    code = f"{value:#x}" if value else "0"
    return f"Audio capture error {int(where)}. [{code}]"


def raise_on_error(hr: int, where: Location) -> None:
    """Raise AudioError if ``hr`` is a failure code."""
    if failed(hr):
        raise AudioError(audio_error_text(hr, where), hr, where)


def opus_max_packet_size() -> int:
    """Largest Opus packet in bytes produced at the highest supported bitrate."""
    return 2 * int(Compression.KBPS_320) * OPUS_FRAME_LENGTH_MS // (1000 * 8)


def opus_input_size(sample_rate: int, channels: int, sample_size: int) -> int:
    """Bytes of PCM that make up one Opus frame; ``sample_size`` is in bits."""
    if sample_size <= 0 or sample_size % 8:
        raise ValueError(f"sample size must be a positive multiple of 8 bits, got {sample_size}")
    if sample_rate <= 0 or channels <= 0:
        raise ValueError("sample rate and channel count must be positive")
    frame_size = int(sample_rate) * OPUS_FRAME_LENGTH_MS // 1000
    return frame_size * int(channels) * (sample_size // 8)