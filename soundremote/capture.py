"""Periodic capture of PCM audio from an audio endpoint."""

from __future__ import annotations

import asyncio
import enum
import logging
import math
from typing import AsyncIterator, Callable, Protocol, TypeVar

from soundremote.audio_util import (
    E_FAIL,
    AudioError,
    AudioFormat,
    Location,
    audio_error_text,
)
from soundremote.wave_format import WaveFormatExtensible, create_wave_format

_log = logging.getLogger(__name__)

_T = TypeVar("_T")

# Durations are kept as integers in units of 100 nanoseconds.
_UNITS_PER_SECOND = 10_000_000


class FormatSupport(enum.Enum):
    """Answer of a device asked whether it can capture a given format."""

    SUPPORTED = "supported"
    CLOSEST_MATCH = "closest_match"
    UNSUPPORTED = "unsupported"


class CaptureDevice(Protocol):
    """An audio endpoint that can be captured from.

    Failing operations raise AudioError, ideally carrying the result code.
    """

    def is_render(self) -> bool:
        """True for playback endpoints, which are captured in loopback mode."""

    def is_format_supported(
        self, wave_format: WaveFormatExtensible
    ) -> tuple[FormatSupport, WaveFormatExtensible | None]:
        """Report support for a format and, for a close match, the suggested one."""

    def mix_format(self) -> WaveFormatExtensible:
        """The format the endpoint mixes in."""

    def initialize(self, wave_format: WaveFormatExtensible, loopback: bool) -> None:
        """Prepare a shared-mode stream in the given format."""

    def buffer_size(self) -> int:
        """Size of the endpoint buffer in frames."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def next_packet_size(self) -> int:
        """Frames in the next captured packet, 0 when none is waiting."""

    def get_buffer(self) -> tuple[bytes, int]:
        """The next packet's data and its frame count."""

    def release_buffer(self, frames: int) -> None: ...

    def peak_value(self) -> float:
        """Peak sample value in the range 0.0 to 1.0."""


class AudioCapture:
    """Captures audio from a device, falling back to a format it supports."""

    def __init__(self, device: CaptureDevice, requested_format: AudioFormat | None = None) -> None:
        self._device = device
        self._requested = create_wave_format(requested_format or AudioFormat())

        support, closest = self._call(
            Location.CAPTURE_AC_ISFORMATSUPPORTED, device.is_format_supported, self._requested
        )
        if support is FormatSupport.SUPPORTED:
            self._resample_required = False
            self._supported = self._requested
        elif support is FormatSupport.CLOSEST_MATCH:
            if closest is None:
                raise AudioError(
                    audio_error_text(E_FAIL, Location.CAPTURE_AC_ISFORMATSUPPORTED),
                    E_FAIL,
                    Location.CAPTURE_AC_ISFORMATSUPPORTED,
                )
            self._resample_required = True
            self._supported = closest
        else:
            self._resample_required = True
            self._supported = self._call(Location.CAPTURE_AC_GETMIXFORMAT, device.mix_format)

        render = self._call(Location.CAPTURE_ENDPOINT_GETDATAFLOW, device.is_render)
        init_location = (
            Location.CAPTURE_AC_INITIALIZE_RENDER if render else Location.CAPTURE_AC_INITIALIZE_CAPTURE
        )
        self._call(init_location, device.initialize, self._supported, bool(render))
        frames = self._call(Location.CAPTURE_AC_GETBUFFERSIZE, device.buffer_size)
        self._buffer_units = int(_UNITS_PER_SECOND * frames / self._supported.samples_per_sec)

    @staticmethod
    def _call(where: Location, func: Callable[..., _T], *args) -> _T:
        try:
            return func(*args)
        except AudioError as exc:
            hr = exc.hr if exc.hr is not None else E_FAIL
            raise AudioError(audio_error_text(hr, where), hr, where) from exc

    def resample_required(self) -> bool:
        """True if the device cannot capture the requested format directly."""
        return self._resample_required

    def requested_wave_format(self) -> WaveFormatExtensible:
        return self._requested

    def captured_wave_format(self) -> WaveFormatExtensible:
        """The format audio is actually captured in."""
        return self._supported

    def buffer_duration(self) -> float:
        """Duration of the device buffer in seconds."""
        return self._buffer_units / _UNITS_PER_SECOND

    def get_peak_value(self) -> float:
        """Peak value of the captured audio in 0.0..1.0, or -1.0 on failure."""
        try:
            return float(self._device.peak_value())
        except Exception:
            return -1.0

    async def capture(self) -> AsyncIterator[bytes]:
        """Yield captured PCM chunks, polling every half buffer.

        While the device delivers nothing for a whole buffer duration, a
        half-buffer of silence is yielded on each poll to keep the stream going.
        """
        device = self._device
        self._call(Location.CAPTURE_AC_START, device.start)
        try:
            period_units = self._buffer_units // 2
            period = period_units / _UNITS_PER_SECOND
            block_align = self._supported.block_align
            silence_frames = math.floor(self._supported.samples_per_sec * period + 0.5)
            silence = bytes(silence_frames * block_align)
            uncompensated = 0

            loop = asyncio.get_running_loop()
            deadline = loop.time()
            while True:
                deadline += period
                await asyncio.sleep(max(0.0, deadline - loop.time()))

                packet_frames = self._call(Location.CAPTURE_ACC_GETNEXTPACKETSIZE, device.next_packet_size)
                if packet_frames == 0:
                    uncompensated += period_units
                    if uncompensated >= self._buffer_units:
                        yield silence
                        uncompensated -= period_units
                else:
                    uncompensated = 0

                while packet_frames != 0:
                    data, frames = self._call(Location.CAPTURE_ACC_GETBUFFER, device.get_buffer)
                    released = False
                    try:
                        yield bytes(data[: frames * block_align])
                        released = True
                        self._call(Location.CAPTURE_ACC_RELEASEBUFFER, device.release_buffer, frames)
                    finally:
                        if not released:
                            self._release_quietly(frames)
                    packet_frames = self._call(
                        Location.CAPTURE_ACC_GETNEXTPACKETSIZE, device.next_packet_size
                    )
        finally:
            try:
                device.stop()
            except AudioError as exc:
                hr = exc.hr if exc.hr is not None else E_FAIL
                _log.error(audio_error_text(hr, Location.CAPTURE_AC_STOP))

    def _release_quietly(self, frames: int) -> None:
        try:
            self._device.release_buffer(frames)
        except AudioError as exc:
            hr = exc.hr if exc.hr is not None else E_FAIL
            _log.error(audio_error_text(hr, Location.CAPTURE_ACC_RELEASEBUFFER))