"""State machine for one press -> record -> answer -> speak cycle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


class VoiceState(str, Enum):
    IDLE = "Idle"
    RECORDING = "Recording"
    PROCESSING = "Processing"
    SPEAKING = "Speaking"
    ERROR = "Error"


class ErrorKind(str, Enum):
    NO_SPEECH = "no-speech"
    NETWORK = "network"
    ABORTED = "aborted"
    OTHER = "other"
    ANSWER_SERVICE = "answer-service"

    @classmethod
    def from_recognition(cls, kind: str) -> "ErrorKind":
        value = getattr(kind, "value", kind)
        for member in (cls.NO_SPEECH, cls.NETWORK, cls.ABORTED):
            if member.value == value:
                return member
        return cls.OTHER


@dataclass
class VoiceSession:
    id: int
    state: VoiceState = VoiceState.RECORDING
    transcript: Optional[str] = None
    answer: Optional[str] = None
    error: Optional[ErrorKind] = None


TransitionObserver = Callable[[VoiceSession, VoiceState, str], None]


class VoiceSessionMachine:
    """Tracks the single in-flight voice session of a controller.

    Every event names the session it belongs to. Events for any session other
    than the current one are ignored and reported as not applied, which is how
    late recognizer, answer and synthesis callbacks are discarded.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._session: Optional[VoiceSession] = None
        self._observers: List[TransitionObserver] = []

    # ------------------------------------------------------------------
    # Introspection

    @property
    def state(self) -> VoiceState:
        return self._session.state if self._session is not None else VoiceState.IDLE

    @property
    def session(self) -> Optional[VoiceSession]:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, session_id: int) -> bool:
        return self._session is not None and self._session.id == session_id

    def add_observer(self, observer: TransitionObserver) -> None:
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Events

    def press(self) -> Optional[VoiceSession]:
        """Start a session. Ignored unless Idle."""

        if self._session is not None:
            return None
        self._generation += 1
        session = VoiceSession(id=self._generation, state=VoiceState.IDLE)
        self._session = session
        self._move(session, VoiceState.RECORDING, "press")
        return session

    def recognition_result(self, session_id: int, transcript: str) -> bool:
        session = self._expect(session_id, VoiceState.RECORDING)
        if session is None:
            return False
        session.transcript = transcript
        self._move(session, VoiceState.PROCESSING, "recognition.result")
        return True

    def recognition_error(self, session_id: int, kind: str) -> bool:
        session = self._expect(session_id, VoiceState.RECORDING)
        if session is None:
            return False
        session.error = ErrorKind.from_recognition(kind)
        self._move(session, VoiceState.ERROR, "recognition.error")
        return True

    def recognition_end(self, session_id: int) -> bool:
        """Recognizer finished; only meaningful if it never produced a result."""

        session = self._expect(session_id, VoiceState.RECORDING)
        if session is None:
            return False
        self._finish(session, "recognition.no_result")
        return True

    def answer_resolved(self, session_id: int, text: str) -> bool:
        session = self._expect(session_id, VoiceState.PROCESSING)
        if session is None:
            return False
        session.answer = text
        self._move(session, VoiceState.SPEAKING, "answer.resolved")
        return True

    def answer_rejected(self, session_id: int) -> bool:
        session = self._expect(session_id, VoiceState.PROCESSING)
        if session is None:
            return False
        session.error = ErrorKind.ANSWER_SERVICE
        self._move(session, VoiceState.ERROR, "answer.rejected")
        return True

    def synthesis_finished(self, session_id: int, *, failed: bool = False) -> bool:
        """Speech (answer or error announcement) ended or failed."""

        if not self.is_current(session_id):
            return False
        session = self._session
        if session.state not in (VoiceState.SPEAKING, VoiceState.ERROR):
            return False
        self._finish(session, "synthesis.error" if failed else "synthesis.end")
        return True

    def cancel(self, reason: str = "cancelled") -> bool:
        """Discard the current session whatever its state."""

        if self._session is None:
            return False
        self._finish(self._session, reason)
        return True

    # ------------------------------------------------------------------
    # Helpers

    def _expect(self, session_id: int, state: VoiceState) -> Optional[VoiceSession]:
        if not self.is_current(session_id):
            return None
        if self._session.state is not state:
            return None
        return self._session

    def _finish(self, session: VoiceSession, reason: str) -> None:
        self._session = None
        self._move(session, VoiceState.IDLE, reason)

    def _move(self, session: VoiceSession, state: VoiceState, reason: str) -> None:
        previous = session.state
        session.state = state
        for observer in list(self._observers):
            observer(session, previous, reason)
