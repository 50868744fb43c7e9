"""Audio capture, format negotiation, resampling and fan-out of PCM frames to clients."""

__version__ = "0.1.0"