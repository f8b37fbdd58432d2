"""Speaker playback through PortAudio."""

from __future__ import annotations

import threading

import sounddevice as sd

BYTES_PER_SAMPLE = 2
STREAM_CHUNK_BYTES = 4096


class SoundDevicePlayback:
    """Writes PCM to the output device in chunks, checking for cancellation."""

    def __init__(self, *, device: int | None = None) -> None:
        self.device = device

    def play(self, pcm: bytes, *, sample_rate: int, cancelled: threading.Event) -> bool:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        with sd.RawOutputStream(
            samplerate=sample_rate,
            channels=1,
            dtype="int16",
            device=self.device,
        ) as stream:
            for start in range(0, len(pcm), STREAM_CHUNK_BYTES):
                if cancelled.is_set():
                    stream.abort()
                    return False
                stream.write(pcm[start : start + STREAM_CHUNK_BYTES])
        return not cancelled.is_set()


def default_output_available() -> bool:
    try:
        device = sd.query_devices(kind="output")
    except (sd.PortAudioError, ValueError):
        return False
    return bool(device) and device.get("max_output_channels", 0) > 0
