"""Recognition service contract and a transcriber-backed recognizer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Union

import requests

from .speech_gate import BYTES_PER_SAMPLE, SpeechGate, SpeechGateConfig

LOGGER = logging.getLogger(__name__)

BLANK_TRANSCRIPT_MARKERS = {
    "[BLANK_AUDIO]",
    "[BLANK]",
    "[SILENCE]",
    "[EMPTY]",
    "[NO_SPEECH]",
}

PARENTHETICAL_NOISE_TOKENS = {
    "music",
    "applause",
    "laughter",
    "silence",
    "noise",
    "static",
}

PUNCT_ONLY_CHARSET = set(".,!?:;-'\"()[]{} ")


class RecognitionErrorKind(str, Enum):
    NO_SPEECH = "no-speech"
    NETWORK = "network"
    ABORTED = "aborted"
    OTHER = "other"


@dataclass(frozen=True)
class TranscriptionResult:
    """Container for transcription outputs."""

    text: str
    segments: List[str] = field(default_factory=list)
    language: Optional[str] = None
    duration: Optional[float] = None


class RecognitionListener(Protocol):
    """Receives exactly one of on_result/on_error, then always on_end."""

    def on_result(self, transcript: str) -> None:  # pragma: no cover - structural
        ...

    def on_error(self, kind: RecognitionErrorKind) -> None:  # pragma: no cover - structural
        ...

    def on_end(self) -> None:  # pragma: no cover - structural
        ...


class Recognizer(Protocol):
    def start(self, listener: RecognitionListener) -> None:  # pragma: no cover - structural
        ...

    def stop(self) -> None:  # pragma: no cover - structural
        ...

    def abort(self) -> None:  # pragma: no cover - structural
        ...


class ASRTranscriber(Protocol):
    def transcribe_pcm(self, pcm: bytes, *, sample_rate: int = 16_000) -> TranscriptionResult:  # pragma: no cover - structural
        ...


class AudioCapture(Protocol):
    sample_rate: int

    def start(self) -> None:  # pragma: no cover - structural
        ...

    def stop(self) -> bytes:  # pragma: no cover - structural
        ...


@dataclass(frozen=True)
class RecognizerConfig:
    """Options for :class:`TranscriberRecognizer`."""

    max_capture_seconds: Optional[float] = 10.0
    min_capture_seconds: float = 0.3
    gate: SpeechGateConfig = field(default_factory=SpeechGateConfig)

    def __post_init__(self) -> None:
        if self.max_capture_seconds is not None and self.max_capture_seconds <= 0:
            raise ValueError("max_capture_seconds must be positive")
        if self.min_capture_seconds < 0:
            raise ValueError("min_capture_seconds must be >= 0")


def is_blank_transcript(text: str) -> bool:
    normalized = (text or "").strip()
    if not normalized:
        return True
    if normalized.upper() in BLANK_TRANSCRIPT_MARKERS:
        return True

    lower = normalized.lower()
    for opener, closer in (("(", ")"), ("[", "]")):
        if normalized.startswith(opener) and normalized.endswith(closer):
            inner = lower.strip("()[] ")
            if not inner:
                return True
            if any(token in inner for token in PARENTHETICAL_NOISE_TOKENS):
                return True

    return all(ch in PUNCT_ONLY_CHARSET for ch in normalized)


Outcome = Union[str, RecognitionErrorKind]


class TranscriberRecognizer:
    """Single-shot recognizer: capture while held, transcribe after stop().

    ``stop()`` is a request: the outcome is delivered later, once the speech
    gate and the transcriber have run. Capture stops on its own after
    ``max_capture_seconds``.
    """

    def __init__(
        self,
        capture: AudioCapture,
        transcriber: ASRTranscriber,
        config: Optional[RecognizerConfig] = None,
        *,
        gate: Optional[SpeechGate] = None,
    ) -> None:
        self.capture = capture
        self.transcriber = transcriber
        self.config = config or RecognizerConfig()
        self._gate = gate or SpeechGate(self.config.gate)
        self._listener: Optional[RecognitionListener] = None
        self._stopping = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._listener is not None

    def start(self, listener: RecognitionListener) -> None:
        if self._listener is not None:
            raise RuntimeError("recognition has already started")
        loop = asyncio.get_running_loop()
        self.capture.start()
        self._listener = listener
        self._stopping = False
        if self.config.max_capture_seconds is not None:
            self._timer = loop.call_later(self.config.max_capture_seconds, self._capture_timeout)

    def stop(self) -> None:
        if self._listener is None or self._stopping:
            return
        self._stopping = True
        self._cancel_timer()
        listener = self._listener
        try:
            pcm = self.capture.stop()
        except Exception as exc:
            LOGGER.warning("Audio capture failed to stop: %s", exc)
            self._listener = None
            self._stopping = False
            listener.on_error(RecognitionErrorKind.OTHER)
            listener.on_end()
            return
        self._task = asyncio.get_running_loop().create_task(self._finish(listener, pcm))

    def abort(self) -> None:
        listener = self._listener
        if listener is None:
            return
        self._cancel_timer()
        if not self._stopping:
            try:
                self.capture.stop()
            except Exception as exc:
                LOGGER.warning("Audio capture failed to stop on abort: %s", exc)
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._listener = None
        self._stopping = False
        listener.on_error(RecognitionErrorKind.ABORTED)
        listener.on_end()

    # ------------------------------------------------------------------
    # Helpers

    def _capture_timeout(self) -> None:
        self._timer = None
        LOGGER.info("Capture reached %.1fs limit; stopping", self.config.max_capture_seconds)
        self.stop()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _finish(self, listener: RecognitionListener, pcm: bytes) -> None:
        outcome = await self._recognize(pcm)
        if self._listener is not listener:
            return
        self._listener = None
        self._stopping = False
        self._task = None
        if isinstance(outcome, RecognitionErrorKind):
            listener.on_error(outcome)
        else:
            listener.on_result(outcome)
        listener.on_end()

    async def _recognize(self, pcm: bytes) -> Outcome:
        sample_rate = self.capture.sample_rate
        duration = len(pcm) / (BYTES_PER_SAMPLE * sample_rate) if sample_rate else 0.0
        if duration < self.config.min_capture_seconds or not self._gate.contains_speech(pcm):
            return RecognitionErrorKind.NO_SPEECH
        try:
            result = await asyncio.to_thread(
                self.transcriber.transcribe_pcm, pcm, sample_rate=sample_rate
            )
        except (requests.RequestException, ConnectionError, TimeoutError) as exc:
            LOGGER.warning("Transcription backend unreachable: %s", exc)
            return RecognitionErrorKind.NETWORK
        except Exception as exc:
            LOGGER.warning("Transcription failed: %s", exc, exc_info=True)
            return RecognitionErrorKind.OTHER
        text = result.text.strip()
        if is_blank_transcript(text):
            return RecognitionErrorKind.NO_SPEECH
        return text
