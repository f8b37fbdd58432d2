"""Faster-Whisper transcription backend."""

from __future__ import annotations

import io
import threading
import wave
from dataclasses import dataclass
from typing import List, Optional

try:
    from faster_whisper import WhisperModel  # type: ignore
except ImportError:  # pragma: no cover - import guard
    WhisperModel = None

from .recognizer import TranscriptionResult


@dataclass(frozen=True)
class FasterWhisperConfig:
    """Runtime options for Faster-Whisper.

    ``model`` is either a model size known to faster-whisper ("base.en",
    "small", ...) or a path to a converted model directory.
    """

    model: str = "base.en"
    device: str = "cpu"
    compute_type: str = "int8"
    language: Optional[str] = "en"
    beam_size: int = 1
    temperature: float = 0.0

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("model must be provided")
        if self.beam_size < 1:
            raise ValueError("beam_size must be >= 1")


class FasterWhisperTranscriber:
    """Transcribe in-memory PCM with the Faster-Whisper Python bindings."""

    def __init__(self, config: FasterWhisperConfig) -> None:
        self.config = config
        self._model: Optional[WhisperModel] = None
        self._model_lock = threading.Lock()

    def transcribe_pcm(self, pcm: bytes, *, sample_rate: int = 16_000) -> TranscriptionResult:
        model = self._ensure_model()
        segments_iter, info = model.transcribe(
            self._to_wav(pcm, sample_rate),
            beam_size=self.config.beam_size,
            temperature=self.config.temperature,
            language=self.config.language,
        )

        segments: List[str] = []
        for segment in segments_iter:
            txt = (segment.text or "").strip()
            if txt:
                segments.append(txt)

        return TranscriptionResult(
            text=" ".join(segments).strip(),
            segments=segments,
            language=info.language,
            duration=info.duration,
        )

    def _ensure_model(self) -> WhisperModel:
        if self._model is not None:
            return self._model
        with self._model_lock:
            if self._model is None:
                if WhisperModel is None:
                    raise ImportError(
                        "faster-whisper is not installed. Install it with `uv pip install faster-whisper`."
                    )
                self._model = WhisperModel(
                    self.config.model,
                    device=self.config.device,
                    compute_type=self.config.compute_type,
                )
            return self._model

    @staticmethod
    def _to_wav(pcm: bytes, sample_rate: int) -> io.BytesIO:
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav_file:
            wav_file.setnchannels(1)
            wav_file.setsampwidth(2)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(pcm)
        buffer.seek(0)
        return buffer
