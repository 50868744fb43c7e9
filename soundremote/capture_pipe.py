"""Pipeline from audio capture to encoded packets sent to clients."""

from __future__ import annotations

import asyncio
import contextlib
import weakref
from typing import Callable, Iterable, Protocol

from soundremote.audio_util import (
    AudioFormat,
    Compression,
    OpusChannels,
    OpusSampleRate,
    opus_input_size,
)
from soundremote.capture import AudioCapture
from soundremote.clients import ClientInfo
from soundremote.resampler import AudioResampler


class Encoder(Protocol):
    def encode(self, pcm: bytes) -> bytes:
        """Encode one frame of PCM; an empty result means nothing to send."""


class AudioServer(Protocol):
    def send_audio(self, compression: Compression, sequence_number: int, data: bytes) -> None: ...


EncoderFactory = Callable[[Compression, OpusSampleRate, OpusChannels], Encoder]


class CapturePipe:
    """Feeds captured audio, cut into fixed frames, to the server per compression."""

    _sequence_number = 1

    def __init__(
        self,
        capture: AudioCapture,
        server: AudioServer,
        muted: bool = False,
        encoder_factory: EncoderFactory | None = None,
    ) -> None:
        self._capture = capture
        self._server = weakref.ref(server)
        self._muted = muted
        self._encoder_factory = encoder_factory
        self._buffer = bytearray()
        self._encoders: dict[Compression, Encoder | None] = {}
        self._task: asyncio.Task | None = None
        self._resampler: AudioResampler | None = None
        if capture.resample_required():
            self._resampler = AudioResampler(
                capture.captured_wave_format(), capture.requested_wave_format(), self._buffer
            )
        fmt = AudioFormat()
        self._input_size = opus_input_size(OpusSampleRate.KHZ_48, OpusChannels.STEREO, fmt.sample_size)

    def start(self) -> None:
        """Start capturing on the running event loop."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the capturing task, if any."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def get_peak_value(self) -> float:
        return self._capture.get_peak_value()

    def set_muted(self, muted: bool) -> None:
        self._muted = muted

    def on_clients_update(self, clients: Iterable[ClientInfo]) -> None:
        """Keep one encoder per compression that some client asks for."""
        new: set[Compression] = set()
        existing: set[Compression] = set()
        for client in clients:
            (existing if client.compression in self._encoders else new).add(client.compression)

        if not new and len(existing) == len(self._encoders):
            return

        if any(c != Compression.NONE for c in new) and self._encoder_factory is None:
            raise ValueError("compressed audio requested but no encoder factory was given")

        self._encoders = {c: e for c, e in self._encoders.items() if c in existing}
        for compression in new:
            if compression == Compression.NONE:
                self._encoders[compression] = None
            else:
                self._encoders[compression] = self._encoder_factory(
                    compression, OpusSampleRate.KHZ_48, OpusChannels.STEREO
                )

    def _have_clients(self) -> bool:
        return bool(self._encoders)

    async def _run(self) -> None:
        async with contextlib.aclosing(self._capture.capture()) as chunks:
            async for chunk in chunks:
                if self._muted:
                    continue
                server = self._server()
                if server is not None and self._have_clients():
                    self.process(chunk, server)

    def process(self, pcm_audio: bytes, server: AudioServer) -> None:
        """Buffer captured audio and send every complete frame to the server."""
        if self._resampler is not None:
            self._resampler.resample(pcm_audio)
        else:
            self._buffer.extend(pcm_audio)
        size = self._input_size
        while len(self._buffer) >= size:
            frame = bytes(self._buffer[:size])
            sequence_number = CapturePipe._sequence_number
            for compression, encoder in self._encoders.items():
                if encoder is None:
                    server.send_audio(compression, sequence_number, frame)
                else:
                    packet = encoder.encode(frame)
                    if packet:
                        server.send_audio(compression, sequence_number, bytes(packet))
            CapturePipe._sequence_number += 1
            del self._buffer[:size]