"""Push-to-talk controller: press to ask, hear the answer spoken back."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Set

from asr import RecognitionErrorKind, Recognizer
from llm import AnswerRequest, AnswerService
from tts import SpeechUtterance, Synthesizer

from .capability import Capability, probe_voice_capability
from .input_filter import PointerEvent
from .transition_log import TransitionLog, truncate
from .voice_session import ErrorKind, VoiceSession, VoiceSessionMachine, VoiceState

LOGGER = logging.getLogger(__name__)


class Indicator(str, Enum):
    IDLE = "Idle"
    RECORDING = "Recording"
    PROCESSING = "Processing"
    SPEAKING = "Speaking"
    ERROR = "Error"
    UNAVAILABLE = "Unavailable"


INDICATOR_LABELS = {
    Indicator.IDLE: "",
    Indicator.RECORDING: "Listening...",
    Indicator.PROCESSING: "Processing...",
    Indicator.SPEAKING: "Speaking...",
    Indicator.ERROR: "",
    Indicator.UNAVAILABLE: "Voice assistant is not supported in your browser",
}

_STATE_INDICATORS = {
    VoiceState.IDLE: Indicator.IDLE,
    VoiceState.RECORDING: Indicator.RECORDING,
    VoiceState.PROCESSING: Indicator.PROCESSING,
    VoiceState.SPEAKING: Indicator.SPEAKING,
    VoiceState.ERROR: Indicator.ERROR,
}


@dataclass(frozen=True)
class VoiceQueryConfig:
    """Speech prosody, spoken apologies, and answer timeout."""

    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    no_speech_message: str = "I didn't hear anything. Please try again."
    recognition_error_message: str = "Sorry, there was an error with speech recognition."
    answer_error_message: str = "Sorry, I encountered an error processing your question."
    answer_timeout: Optional[float] = None
    log_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.answer_timeout is not None and self.answer_timeout <= 0:
            raise ValueError("answer_timeout must be positive")
        # Fail at construction on prosody outside the synthesizer's range.
        SpeechUtterance("probe", rate=self.rate, pitch=self.pitch, volume=self.volume)


class _RecognitionEvents:
    def __init__(self, controller: "VoiceQueryController", session_id: int) -> None:
        self._controller = controller
        self._session_id = session_id

    def on_result(self, transcript: str) -> None:
        self._controller._on_recognition_result(self._session_id, transcript)

    def on_error(self, kind: RecognitionErrorKind) -> None:
        self._controller._on_recognition_error(self._session_id, kind)

    def on_end(self) -> None:
        self._controller._on_recognition_end(self._session_id)


class _SynthesisEvents:
    def __init__(self, controller: "VoiceQueryController", session_id: int) -> None:
        self._controller = controller
        self._session_id = session_id

    def on_start(self) -> None:
        if self._controller._machine.is_current(self._session_id):
            self._controller._log.emit(
                self._controller.state.value, session=self._session_id, reason="synthesis.start"
            )

    def on_end(self) -> None:
        self._controller._machine.synthesis_finished(self._session_id)

    def on_error(self, reason: str) -> None:
        self._controller._on_synthesis_error(self._session_id, reason)


class VoiceQueryController:
    """Binds press/release gestures to one :class:`VoiceSessionMachine`.

    All callbacks carry the id of the session that issued the request; the
    machine ignores any whose session is no longer current. The visible
    indicator is derived from the machine state and nothing else.
    """

    def __init__(
        self,
        *,
        recognizer: Optional[Recognizer],
        synthesizer: Optional[Synthesizer],
        answers: AnswerService,
        context_id: str,
        context_label: str,
        config: Optional[VoiceQueryConfig] = None,
        on_indicator: Optional[Callable[[Indicator], None]] = None,
    ) -> None:
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.answers = answers
        self.context_id = context_id
        self.context_label = context_label
        self.config = config or VoiceQueryConfig()
        self.capability = probe_voice_capability(recognizer, synthesizer)
        self._on_indicator = on_indicator
        self._machine = VoiceSessionMachine()
        self._machine.add_observer(self._on_transition)
        self._stop_requested: Optional[int] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._log = TransitionLog("voice_query", self.config.log_path)
        if self.capability is Capability.UNAVAILABLE:
            self._log.emit("Unavailable", reason="capability.missing")

    # ------------------------------------------------------------------
    # Public API

    @property
    def available(self) -> bool:
        return self.capability is Capability.AVAILABLE and not self._closed

    @property
    def state(self) -> VoiceState:
        return self._machine.state

    @property
    def session(self) -> Optional[VoiceSession]:
        return self._machine.session

    @property
    def indicator(self) -> Indicator:
        if self.capability is Capability.UNAVAILABLE:
            return Indicator.UNAVAILABLE
        return _STATE_INDICATORS[self._machine.state]

    @property
    def label(self) -> str:
        return INDICATOR_LABELS[self.indicator]

    @property
    def aria_label(self) -> str:
        if self._machine.state is VoiceState.RECORDING:
            return "Recording, release to stop"
        return "Hold to ask a question"

    @property
    def button_disabled(self) -> bool:
        if not self.available:
            return True
        return self._machine.state in (VoiceState.PROCESSING, VoiceState.SPEAKING, VoiceState.ERROR)

    def on_press(self, event: Optional[PointerEvent] = None) -> bool:
        """Pointer-down / touch-start. Returns True when a session started."""

        if event is not None and event.is_touch:
            event.prevent_default()
        if not self.available:
            return False
        session = self._machine.press()
        if session is None:
            self._log.emit(self._machine.state.value, reason="press.ignored")
            return False
        self._stop_requested = None
        try:
            self.recognizer.start(_RecognitionEvents(self, session.id))
        except Exception as exc:
            LOGGER.error("Error starting recognition: %s", exc)
            self._machine.cancel("recognition.start_failed")
            return False
        return True

    def on_release(self, event: Optional[PointerEvent] = None) -> bool:
        """Pointer-up / pointer-leave / touch-end: ask the recognizer to stop."""

        if event is not None and event.is_touch:
            event.prevent_default()
        session = self._machine.session
        if not self.available or session is None or session.state is not VoiceState.RECORDING:
            return False
        if self._stop_requested == session.id:
            return False
        self._stop_requested = session.id
        self._log.emit("Recording", session=session.id, reason="release.stop_requested")
        try:
            self.recognizer.stop()
        except Exception as exc:
            LOGGER.error("Error stopping recognition: %s", exc)
            self._machine.cancel("recognition.stop_failed")
            self._abort_recognition()
        return True

    async def resolve_answer(self, question: str, context_id: str, context_label: str) -> str:
        request = AnswerRequest(question=question, context_id=context_id, context_label=context_label)
        if self.config.answer_timeout is None:
            return await self.answers.resolve(request)
        return await asyncio.wait_for(self.answers.resolve(request), self.config.answer_timeout)

    def set_context(self, context_id: str, context_label: str) -> None:
        """The viewer switched videos: drop any session tied to the old one."""

        if context_id == self.context_id and context_label == self.context_label:
            return
        self._teardown("context.changed")
        self.context_id = context_id
        self.context_label = context_label

    async def join(self) -> None:
        """Wait for outstanding answer lookups to settle."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        if self._closed:
            return
        self._teardown("controller.closed")
        for task in list(self._tasks):
            task.cancel()
        self._closed = True
        self._log.close()

    # ------------------------------------------------------------------
    # Event handlers

    def _on_recognition_result(self, session_id: int, transcript: str) -> None:
        if not self._machine.recognition_result(session_id, transcript):
            self._log.emit(self._machine.state.value, session=session_id, reason="result.discarded")
            return
        task = asyncio.get_running_loop().create_task(self._answer(session_id, transcript))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_recognition_error(self, session_id: int, kind: RecognitionErrorKind) -> None:
        LOGGER.warning("Speech recognition error: %s", getattr(kind, "value", kind))
        if not self._machine.recognition_error(session_id, kind):
            return
        if ErrorKind.from_recognition(kind) is ErrorKind.NO_SPEECH:
            message = self.config.no_speech_message
        else:
            message = self.config.recognition_error_message
        self._speak(session_id, message)

    def _on_recognition_end(self, session_id: int) -> None:
        self._machine.recognition_end(session_id)

    def _on_synthesis_error(self, session_id: int, reason: str) -> None:
        if self._machine.synthesis_finished(session_id, failed=True):
            LOGGER.warning("Speech synthesis error: %s", reason)

    async def _answer(self, session_id: int, transcript: str) -> None:
        try:
            answer = await self.resolve_answer(transcript, self.context_id, self.context_label)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.error("Error processing question: %s", exc)
            if self._machine.answer_rejected(session_id):
                self._speak(session_id, self.config.answer_error_message)
            return
        if not self._machine.answer_resolved(session_id, answer):
            self._log.emit(self._machine.state.value, session=session_id, reason="answer.discarded")
            return
        self._speak(session_id, answer)

    def _speak(self, session_id: int, text: str) -> None:
        try:
            utterance = SpeechUtterance(
                text,
                rate=self.config.rate,
                pitch=self.config.pitch,
                volume=self.config.volume,
            )
            self.synthesizer.speak(utterance, _SynthesisEvents(self, session_id))
        except Exception as exc:
            LOGGER.warning("Speech synthesis could not start: %s", exc)
            self._machine.synthesis_finished(session_id, failed=True)

    def _on_transition(self, session: VoiceSession, previous: VoiceState, reason: str) -> None:
        state = session.state
        if state in (VoiceState.RECORDING, VoiceState.PROCESSING) and self.synthesizer is not None:
            self.synthesizer.cancel()
        metadata = {"reason": reason, "previous": previous.value}
        if state is VoiceState.PROCESSING and session.transcript:
            metadata["transcript_preview"] = truncate(session.transcript)
        if state is VoiceState.SPEAKING and session.answer:
            metadata["answer_preview"] = truncate(session.answer)
        if state is VoiceState.ERROR and session.error is not None:
            metadata["error"] = session.error.value
        self._log.emit(state.value, session=session.id, **metadata)
        if self._on_indicator is not None:
            self._on_indicator(_STATE_INDICATORS[state])

    def _teardown(self, reason: str) -> None:
        state = self._machine.state
        self._machine.cancel(reason)
        self._stop_requested = None
        if state is VoiceState.RECORDING and self.recognizer is not None:
            self._abort_recognition()
        if self.synthesizer is not None:
            self.synthesizer.cancel()

    def _abort_recognition(self) -> None:
        try:
            self.recognizer.abort()
        except Exception as exc:
            LOGGER.error("Error aborting recognition: %s", exc)
