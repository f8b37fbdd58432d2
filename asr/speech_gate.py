"""WebRTC VAD gate deciding whether captured audio contains any speech."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

try:
    import webrtcvad  # type: ignore
except ImportError as exc:  # pragma: no cover - import guard
    raise ImportError(
        "webrtcvad is required for the speech gate. Install it with `uv pip install webrtcvad-wheels`."
    ) from exc

BYTES_PER_SAMPLE = 2


@dataclass(frozen=True)
class SpeechGateConfig:
    """Runtime configuration for :class:`SpeechGate`.

    Attributes:
        sample_rate: PCM sample rate in Hz. WebRTC VAD supports 8000, 16000,
            32000, and 48000.
        frame_duration_ms: Frame size in milliseconds (10, 20, or 30).
        aggressiveness: VAD aggressiveness level (0..3).
        min_speech_frames: Consecutive voiced frames needed before the audio
            counts as speech. Filters clicks and breaths.
    """

    sample_rate: int = 16_000
    frame_duration_ms: int = 30
    aggressiveness: int = 2
    min_speech_frames: int = 3

    def __post_init__(self) -> None:
        if self.sample_rate not in (8000, 16000, 32000, 48000):
            raise ValueError("sample_rate must be one of 8000, 16000, 32000, 48000")
        if self.frame_duration_ms not in (10, 20, 30):
            raise ValueError("frame_duration_ms must be 10, 20, or 30")
        if not (0 <= self.aggressiveness <= 3):
            raise ValueError("aggressiveness must be between 0 and 3")
        if self.min_speech_frames < 1:
            raise ValueError("min_speech_frames must be >= 1")


class SpeechGate:
    """Answers "did the user say anything at all" for a finished capture."""

    def __init__(self, config: SpeechGateConfig | None = None) -> None:
        self.config = config or SpeechGateConfig()
        self._vad = webrtcvad.Vad(self.config.aggressiveness)
        self._frame_bytes = int(self.config.sample_rate * self.config.frame_duration_ms / 1000) * BYTES_PER_SAMPLE

    def _iter_frames(self, pcm: bytes) -> Iterable[bytes]:
        for offset in range(0, len(pcm) - self._frame_bytes + 1, self._frame_bytes):
            yield pcm[offset : offset + self._frame_bytes]

    def longest_voiced_run(self, pcm: bytes) -> int:
        longest = 0
        run = 0
        for frame in self._iter_frames(pcm):
            if self._vad.is_speech(frame, self.config.sample_rate):
                run += 1
                longest = max(longest, run)
            else:
                run = 0
        return longest

    def contains_speech(self, pcm: bytes) -> bool:
        return self.longest_voiced_run(pcm) >= self.config.min_speech_frames
