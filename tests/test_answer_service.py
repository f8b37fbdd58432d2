import pytest
import requests

from llm import AnswerRequest, AnswerServiceError, PlaceholderAnswerService, VLLMAnswerService, VLLMConfig


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        pass


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def request_():
    return AnswerRequest(question="  what is ownership? ", context_id="vid1", context_label="Intro to Rust")


def make_service(session, **config):
    service = VLLMAnswerService(VLLMConfig(**config))
    service._session = session
    return service


def test_request_strips_question(request_):
    assert request_.question == "what is ownership?"


def test_request_rejects_blank_question():
    with pytest.raises(ValueError):
        AnswerRequest(question="   ", context_id="vid1", context_label="x")


async def test_placeholder_echoes_question(request_):
    answer = await PlaceholderAnswerService().resolve(request_)
    assert answer == (
        'Based on the video "Intro to Rust", I understand you asked: "what is ownership?". '
        "This feature is currently being developed."
    )


async def test_vllm_answer(request_):
    session = FakeSession(FakeResponse(payload=completion("  It is about memory.  ")))
    service = make_service(session, base_url="http://llm:8000/v1/")
    assert await service.resolve(request_) == "It is about memory."
    url, payload, timeout = session.calls[0]
    assert url == "http://llm:8000/v1/chat/completions"
    assert timeout == 30.0
    assert "Intro to Rust" in payload["messages"][1]["content"]
    assert "what is ownership?" in payload["messages"][1]["content"]
    assert "stop" not in payload


def test_vllm_truncates_long_answers(request_):
    session = FakeSession(FakeResponse(payload=completion("x" * 1000)))
    service = make_service(session, max_tokens=10)
    assert len(service.answer(request_)) == 42


def test_vllm_legacy_text_field(request_):
    session = FakeSession(FakeResponse(payload={"choices": [{"text": "plain"}]}))
    assert make_service(session).answer(request_) == "plain"


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("refused")),
        FakeSession(FakeResponse(status_code=503, text="overloaded")),
        FakeSession(FakeResponse(payload=None)),
        FakeSession(FakeResponse(payload=completion("   "))),
        FakeSession(FakeResponse(payload={"choices": []})),
    ],
)
async def test_vllm_failures(request_, session):
    with pytest.raises(AnswerServiceError):
        await make_service(session).resolve(request_)


@pytest.mark.parametrize("kwargs", [{"base_url": ""}, {"max_tokens": 0}, {"timeout": 0}])
def test_vllm_config_validation(kwargs):
    with pytest.raises(ValueError):
        VLLMConfig(**kwargs)
