import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from asr import RecognitionErrorKind  # noqa: E402
from llm import AnswerRequest  # noqa: E402
from surface import RemoteSurfaceHandle  # noqa: E402


# ---------------------------------------------------------------------------
# Surface fakes
# ---------------------------------------------------------------------------

class FakePlayer:
    def __init__(self, surface_id: str = "") -> None:
        self.surface_id = surface_id
        self.calls: List[str] = []

    def pauseVideo(self) -> None:
        self.calls.append("pauseVideo")

    def playVideo(self) -> None:
        self.calls.append("playVideo")


class PostRecorder:
    def __init__(self, fail: bool = False) -> None:
        self.messages: List[tuple] = []
        self.fail = fail

    def __call__(self, data: str, target_origin: str) -> None:
        if self.fail:
            raise RuntimeError("frame detached")
        self.messages.append((data, target_origin))


# ---------------------------------------------------------------------------
# Voice fakes
# ---------------------------------------------------------------------------

class FakeRecognizer:
    """Recognizer whose terminal events are emitted by the test."""

    def __init__(self, fail_start: bool = False, fail_stop: bool = False, fail_abort: bool = False) -> None:
        self.listener = None
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.fail_abort = fail_abort
        self.starts = 0
        self.stops = 0
        self.aborts = 0

    def start(self, listener) -> None:
        if self.fail_start:
            raise RuntimeError("microphone busy")
        if self.listener is not None:
            raise RuntimeError("recognition has already started")
        self.listener = listener
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1
        if self.fail_stop:
            raise OSError("PortAudio: device unavailable")

    def abort(self) -> None:
        self.aborts += 1
        if self.fail_abort:
            raise OSError("PortAudio: device unavailable")
        listener, self.listener = self.listener, None
        if listener is not None:
            listener.on_error(RecognitionErrorKind.ABORTED)
            listener.on_end()

    def emit_result(self, transcript: str) -> None:
        listener, self.listener = self.listener, None
        listener.on_result(transcript)
        listener.on_end()

    def emit_error(self, kind: RecognitionErrorKind) -> None:
        listener, self.listener = self.listener, None
        listener.on_error(kind)
        listener.on_end()

    def emit_end(self) -> None:
        listener, self.listener = self.listener, None
        listener.on_end()


class FakeSynthesizer:
    """Synthesizer that holds the current utterance until the test finishes it."""

    def __init__(self, fail_speak: bool = False) -> None:
        self.spoken = []
        self.current = None
        self.cancels = 0
        self.fail_speak = fail_speak

    @property
    def texts(self) -> List[str]:
        return [utterance.text for utterance in self.spoken]

    def speak(self, utterance, listener) -> None:
        if self.fail_speak:
            raise RuntimeError("no voices installed")
        self._interrupt()
        self.spoken.append(utterance)
        self.current = listener

    def cancel(self) -> None:
        self.cancels += 1
        self._interrupt()

    def finish(self) -> None:
        listener, self.current = self.current, None
        listener.on_start()
        listener.on_end()

    def fail(self, reason: str = "synthesis-failed") -> None:
        listener, self.current = self.current, None
        listener.on_error(reason)

    def _interrupt(self) -> None:
        listener, self.current = self.current, None
        if listener is not None:
            listener.on_error("interrupted")


class FakeAnswerService:
    """Answers immediately, raises, or waits for the test to resolve it."""

    def __init__(self, reply: str = "This video explains X", error: Optional[Exception] = None, gated: bool = False) -> None:
        self.reply = reply
        self.error = error
        self.gated = gated
        self.requests: List[AnswerRequest] = []
        self.pending: List[asyncio.Future] = []

    async def resolve(self, request: AnswerRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.gated:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        return self.reply


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def player():
    return FakePlayer("abc123")


@pytest.fixture
def posts():
    return PostRecorder()


@pytest.fixture
def handle(posts):
    surface = RemoteSurfaceHandle("abc123")
    surface.attach_message_target(posts)
    return surface


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def answers():
    return FakeAnswerService()
