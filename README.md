# soundremote

This package captures audio, converts it to one common PCM format, cuts it into fixed-size frames and hands each frame to a server once for every compression its clients ask for.

## Installation

```
pip install .
```

To install the test requirements too, run `pip install .[test]`.

## Modules

### `soundremote.audio_util`

This module holds the types and helpers that the other modules share.

- `Compression` lists the client bitrates. `NONE` means raw PCM.
- `OpusSampleRate` and `OpusChannels` list the encoder sample rates and channel layouts.
- `SampleType`, `ByteOrder` and `AudioFormat` describe a stream. The default `AudioFormat` is 48 kHz, stereo, 16-bit signed, little endian.
- `Location` numbers the operations that can fail.
- `AudioError` is a `RuntimeError` with two extra attributes: the result code `hr` and its location `where`.
- `failed(hr)` reports whether a 32-bit result code signals failure.
- `audio_error_text(error_code, where)` formats a message such as `Audio capture error 7. [0x80004005]`. It gives a dedicated message when microphone access is denied.
- `raise_on_error(hr, where)` raises `AudioError` when `hr` is a failure code.
- `opus_max_packet_size()` gives the largest packet size in bytes.
- `opus_input_size(sample_rate, channels, sample_size)` gives the number of PCM bytes in one 10 ms frame. `sample_size` is in bits.

### `soundremote.clients`

`Clients` tracks clients by address. The address can be any hashable value.

- `add` registers a client or refreshes one it already knows.
- `set_compression` changes the compression of a known client.
- `keep` records contact with a client.
- `remove` drops a client.
- `maintain` drops every client not heard from for longer than `timeout_seconds`. The default is 5 seconds.
- `client_infos()` returns the current list of `ClientInfo(address, compression)`.
- Listeners added with `add_clients_listener` are called straight away with the current list. After that they are called again whenever the set of clients or their compressions changes.
- `remove_clients_listener` unsubscribes every registration equal to the listener and returns how many were removed.

### `soundremote.wave_format`

This module models the 40-byte extensible wave format block as `WaveFormatExtensible`.

- `create_wave_format(audio_format)` builds the block for an `AudioFormat`.
- `to_bytes()` serialises a block.
- `WaveFormatExtensible.from_bytes(data)` parses one. It also accepts a plain 18-byte header and derives the sub-format from the format tag.
- `SubFormat` holds the PCM, IEEE float and "none" sub-format identifiers.

### `soundremote.capture`

`AudioCapture(device, requested_format=None)` works over any object that implements the `CaptureDevice` protocol.

- When it is created, it asks the device whether the requested format is supported. The answer is a `FormatSupport`.
  - If the format is not supported exactly, it falls back to the device's closest match or to its mix format.
  - `resample_required()`, `requested_wave_format()`, `captured_wave_format()` and `buffer_duration()` report the outcome.
- `capture()` is an async generator. It starts the device and polls it every half buffer, yielding each captured packet as bytes.
  - If the device delivers nothing for a whole buffer duration, it yields a half-buffer of silence on each poll.
  - When the generator closes, it stops the device.
- Device failures surface as `AudioError`, tagged with the location of the operation that failed.
- `get_peak_value()` returns the device's peak level, or `-1.0` if reading the level fails.

### `soundremote.resampler`

`AudioResampler(input_format, output_format, out_buffer)` converts a stream of PCM chunks from one wave format to another.

- It supports integer PCM of 8, 16, 24 or 32 bits and IEEE float of 32 or 64 bits.
- It changes the sample rate by linear interpolation and remixes the channels.
- `resample(pcm_audio)` appends the converted audio to `out_buffer`, which is a `bytearray`, and returns the number of bytes it appended.
- State carries over between calls, so splitting the input differently gives the same output.
- An unusable format raises `AudioError`.

### `soundremote.capture_pipe`

`CapturePipe(capture, server, muted=False, encoder_factory=None)` connects the parts.

- `start()` runs the capture as a task on the running asyncio event loop. `stop()` cancels that task.
- Unless the pipe is muted, and as long as the server is still alive and there are clients, each chunk goes to `process`. The pipe holds only a weak reference to the server. `set_muted` changes the muted state.
- `process(pcm_audio, server)` works in these steps:
  - It resamples the chunk when the capture requires it.
  - It buffers the audio.
  - It cuts the buffer into 10 ms frames of 48 kHz, stereo, 16-bit audio.
  - It calls `server.send_audio(compression, sequence_number, data)` once per compression in use.
- Frames for `Compression.NONE` are sent raw. Other compressions go through an encoder made by `encoder_factory(compression, sample_rate, channels)`. Encoded packets that come back empty are not sent.
- Sequence numbers start at 1 and are shared by all pipes.
- `on_clients_update(clients)` takes a list of `ClientInfo`, such as the one a `Clients` listener receives. It keeps exactly one encoder for each compression in use.
  - It raises `ValueError` if a compressed stream is requested and no encoder factory was given.
- `get_peak_value()` forwards to the capture.

## Example

```python
from soundremote.audio_util import AudioFormat, Compression
from soundremote.clients import Clients
from soundremote.resampler import AudioResampler
from soundremote.wave_format import create_wave_format

clients = Clients(timeout_seconds=5)
clients.add_clients_listener(lambda infos: print(infos))
clients.add(("192.0.2.10", 5000), Compression.KBPS_128)
clients.maintain()  # drops clients that have not been heard from in time

out = bytearray()
resampler = AudioResampler(
    create_wave_format(AudioFormat(sample_rate=44_100)),
    create_wave_format(AudioFormat()),
    out,
)
resampler.resample(bytes(4 * 441))  # 10 ms of 44.1 kHz stereo silence
```

## What this package does not do

The package does not include the following:

- **Capture devices.** There is no implementation of `CaptureDevice`, so you must provide an object that reads from a real audio endpoint.
- **An Opus encoder.** Compressed streams need an encoder supplied through `encoder_factory`.
- **A network server.** The server given to `CapturePipe` must implement `send_audio` itself.
- **A command-line program.**