import numpy as np
import pytest

from soundremote.audio_util import AudioError, AudioFormat, Location, SampleType
from soundremote.resampler import MF_E_INVALIDMEDIATYPE, AudioResampler
from soundremote.wave_format import create_wave_format

INT16_STEREO_48K = create_wave_format(AudioFormat())
FLOAT_STEREO_48K = create_wave_format(AudioFormat(sample_size=32, sample_type=SampleType.FLOAT))


def _int16(values):
    return np.array(values, dtype="<i2").tobytes()


def test_identical_formats_pass_audio_through():
    out = bytearray()
    resampler = AudioResampler(INT16_STEREO_48K, INT16_STEREO_48K, out)
    data = _int16([0, 1, -1, 32767, -32768, 1234, 5, -6])
    written = resampler.resample(data)
    assert written == len(data)
    assert bytes(out) == data


def test_int16_to_float_scales_to_unit_range():
    out = bytearray()
    resampler = AudioResampler(INT16_STEREO_48K, FLOAT_STEREO_48K, out)
    resampler.resample(_int16([-32768, 0, 16384, 0]))
    result = np.frombuffer(bytes(out), "<f4")
    assert result.tolist() == [-1.0, 0.0, 0.5, 0.0]


def test_float_to_int16_round_trip():
    samples = _int16(np.random.default_rng(1).integers(-32768, 32767, 200))
    as_float = bytearray()
    AudioResampler(INT16_STEREO_48K, FLOAT_STEREO_48K, as_float).resample(samples)
    back = bytearray()
    AudioResampler(FLOAT_STEREO_48K, INT16_STEREO_48K, back).resample(bytes(as_float))
    assert bytes(back) == samples


def test_float_output_clips_to_int16_range():
    out = bytearray()
    resampler = AudioResampler(FLOAT_STEREO_48K, INT16_STEREO_48K, out)
    resampler.resample(np.array([2.0, -2.0], dtype="<f4").tobytes())
    result = np.frombuffer(bytes(out), "<i2")
    assert result.max() == np.iinfo(np.int16).max
    assert result.min() == np.iinfo(np.int16).min


def test_mono_input_is_duplicated_to_all_channels():
    mono = create_wave_format(AudioFormat(channel_count=1))
    out = bytearray()
    AudioResampler(mono, INT16_STEREO_48K, out).resample(_int16([10, 20, 30]))
    frames = np.frombuffer(bytes(out), "<i2").reshape(-1, 2)
    assert frames[:, 0].tolist() == [10, 20, 30]
    assert (frames[:, 0] == frames[:, 1]).all()


def test_stereo_to_mono_averages_channels():
    mono = create_wave_format(AudioFormat(channel_count=1))
    out = bytearray()
    AudioResampler(INT16_STEREO_48K, mono, out).resample(_int16([2, 4, 10, 20]))
    assert np.frombuffer(bytes(out), "<i2").tolist() == [3, 15]


def test_chunked_input_matches_single_call():
    rng = np.random.default_rng(7)
    data = _int16(rng.integers(-20000, 20000, 2 * 4410))
    source = create_wave_format(AudioFormat(sample_rate=44_100))

    whole = bytearray()
    AudioResampler(source, FLOAT_STEREO_48K, whole).resample(data)

    chunked = bytearray()
    resampler = AudioResampler(source, FLOAT_STEREO_48K, chunked)
    cuts = [0, 3, 101, 1000, 1001, 7777, 12000, len(data)]
    for start, end in zip(cuts, cuts[1:]):
        resampler.resample(data[start:end])

    assert bytes(chunked) == bytes(whole)


def test_upsampling_produces_frames_in_rate_ratio():
    source = create_wave_format(AudioFormat(sample_rate=24_000))
    out = bytearray()
    resampler = AudioResampler(source, INT16_STEREO_48K, out)
    input_frames = 0
    for _ in range(10):
        resampler.resample(_int16([100] * 2 * 240))
        input_frames += 240
    output_frames = len(out) // INT16_STEREO_48K.block_align
    assert abs(output_frames - 2 * input_frames) <= 2


def test_constant_signal_stays_constant_across_rates():
    source = create_wave_format(AudioFormat(sample_rate=44_100))
    out = bytearray()
    resampler = AudioResampler(source, INT16_STEREO_48K, out)
    for _ in range(5):
        resampler.resample(_int16([1000, -1000] * 441))
    frames = np.frombuffer(bytes(out), "<i2").reshape(-1, 2)
    assert len(frames) > 0
    assert (frames[:, 0] == 1000).all()
    assert (frames[:, 1] == -1000).all()


def test_output_is_appended_to_given_buffer():
    out = bytearray(b"head")
    AudioResampler(INT16_STEREO_48K, INT16_STEREO_48K, out).resample(_int16([5, 6]))
    assert bytes(out) == b"head" + _int16([5, 6])


def test_partial_frame_is_held_until_completed():
    out = bytearray()
    resampler = AudioResampler(INT16_STEREO_48K, INT16_STEREO_48K, out)
    data = _int16([7, 8])
    assert resampler.resample(data[:3]) == 0
    assert bytes(out) == b""
    resampler.resample(data[3:])
    assert bytes(out) == data


def test_unknown_input_format_is_rejected():
    unknown = create_wave_format(AudioFormat(sample_type=SampleType.UNKNOWN))
    with pytest.raises(AudioError) as info:
        AudioResampler(unknown, INT16_STEREO_48K, bytearray())
    assert info.value.where == Location.RESAMPLER_INITMEDIATYPE_INPUT
    assert info.value.hr == MF_E_INVALIDMEDIATYPE


def test_unsupported_output_format_is_rejected():
    odd = create_wave_format(AudioFormat(sample_size=16, sample_type=SampleType.FLOAT))
    with pytest.raises(AudioError) as info:
        AudioResampler(INT16_STEREO_48K, odd, bytearray())
    assert info.value.where == Location.RESAMPLER_INITMEDIATYPE_OUTPUT