"""Microphone capture for push-to-talk recognition."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

import sounddevice as sd

LOGGER = logging.getLogger(__name__)

SAMPLE_RATE = 16_000
FRAME_MS = 20
FRAME_SAMPLES = int(SAMPLE_RATE * FRAME_MS / 1000)


class SoundDeviceCapture:
    """Buffers mono int16 PCM from an input device between start() and stop()."""

    def __init__(self, *, sample_rate: int = SAMPLE_RATE, device: Optional[int] = None) -> None:
        self.sample_rate = sample_rate
        self.device = device
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._stream: Optional[sd.RawInputStream] = None

    def start(self) -> None:
        if self._stream is not None:
            raise RuntimeError("capture already running")
        with self._lock:
            self._chunks = []
        stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="int16",
            blocksize=int(self.sample_rate * FRAME_MS / 1000),
            device=self.device,
            callback=self._callback,
        )
        stream.start()
        self._stream = stream

    def stop(self) -> bytes:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()
        with self._lock:
            pcm = b"".join(self._chunks)
            self._chunks = []
        return pcm

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            LOGGER.debug("Input stream status: %s", status)
        with self._lock:
            self._chunks.append(bytes(indata))


def default_input_available() -> bool:
    try:
        device = sd.query_devices(kind="input")
    except (sd.PortAudioError, ValueError):
        return False
    return bool(device) and device.get("max_input_channels", 0) > 0
