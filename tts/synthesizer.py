"""Speech synthesis contract shared by the voice controller and backends."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SpeechUtterance:
    """Text to speak plus prosody; ranges follow the Web Speech API."""

    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("text to speak must be non-empty")
        if not (0.1 <= self.rate <= 10.0):
            raise ValueError("rate must be between 0.1 and 10")
        if not (0.0 <= self.pitch <= 2.0):
            raise ValueError("pitch must be between 0 and 2")
        if not (0.0 <= self.volume <= 1.0):
            raise ValueError("volume must be between 0 and 1")


class SynthesisListener(Protocol):
    def on_start(self) -> None:  # pragma: no cover - structural
        ...

    def on_end(self) -> None:  # pragma: no cover - structural
        ...

    def on_error(self, reason: str) -> None:  # pragma: no cover - structural
        ...


class Synthesizer(Protocol):
    """speak() cancels whatever utterance is still queued or playing."""

    def speak(self, utterance: SpeechUtterance, listener: SynthesisListener) -> None:  # pragma: no cover - structural
        ...

    def cancel(self) -> None:  # pragma: no cover - structural
        ...


class PlaybackSink(Protocol):
    def play(self, pcm: bytes, *, sample_rate: int, cancelled: threading.Event) -> bool:  # pragma: no cover - structural
        """Play mono int16 PCM; return False when stopped by ``cancelled``."""
        ...
