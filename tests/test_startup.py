import json
from pathlib import Path

import pytest

from conftest import FakeRecognizer, FakeSynthesizer, settle
from controller import Indicator, VoiceState, startup
from controller.startup import DEFAULT_CONFIG_PATH, ConfigError, ConsoleSession, load_config, main
from llm import PlaceholderAnswerService, VLLMAnswerService
from surface import ReadinessSignal


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "viewer.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_default_file_loads(self):
        config = load_config(DEFAULT_CONFIG_PATH)
        assert config.hold.hold_key == "q"
        assert config.hold.resume_on_release is False
        assert config.hold.settle_delay == 0.5
        assert config.answer_backend == "placeholder"
        assert config.kokoro.sample_rate == 24_000
        assert config.log_level == "INFO"

    def test_none_gives_defaults(self):
        config = load_config(None)
        assert config.config_path is None
        assert config.voice.answer_timeout is None

    def test_values_and_relative_log_path(self, tmp_path):
        path = write_config(
            tmp_path,
            """
[hold]
key = "P"
resume_on_release = true
settle_delay = 1

[voice]
rate = 1.25
answer_timeout = 15

[answer]
backend = "vLLM"
base_url = "http://llm:9000/v1"
max_tokens = 64

[asr]
input_device = 3

[logging]
level = "debug"
log_path = "logs/transitions.jsonl"
""",
        )
        config = load_config(path)
        assert config.hold.hold_key == "p"
        assert config.hold.resume_on_release is True
        assert config.hold.settle_delay == 1.0
        assert config.voice.rate == 1.25
        assert config.voice.answer_timeout == 15.0
        assert config.answer_backend == "vllm"
        assert config.vllm.base_url == "http://llm:9000/v1"
        assert config.vllm.max_tokens == 64
        assert config.input_device == 3
        assert config.log_level == "DEBUG"
        assert config.hold.log_path == (tmp_path / "logs" / "transitions.jsonl").resolve()
        assert config.voice.log_path == config.hold.log_path

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.toml")

    @pytest.mark.parametrize(
        "text",
        [
            "[hold\nkey = 'q'",
            "[hold]\nkey = 5",
            "[hold]\nsettle_delay = -1",
            "[voice]\nvolume = 2.0",
            "[answer]\nbackend = 'gpt'",
            "[tts]\nsample_rate = true",
            "[logging]\nlevel = 'LOUD'",
            "hold = 3",
        ],
    )
    def test_invalid_config(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, text))

    def test_answer_backend_selection(self, tmp_path):
        assert isinstance(startup.build_answer_service(load_config(None)), PlaceholderAnswerService)
        vllm = load_config(write_config(tmp_path, "[answer]\nbackend = 'vllm'"))
        service = startup.build_answer_service(vllm)
        assert isinstance(service, VLLMAnswerService)
        service.close()


def test_build_surface_attaches_message_channel():
    posted = []
    embed, handle = startup.build_surface("abc123", "Title", lambda data, origin: posted.append((data, origin)))
    assert "enablejsapi=1" in embed.src
    handle.mark_ready()
    handle.send("pauseVideo")
    assert json.loads(posted[0][0])["func"] == "pauseVideo"
    assert posted[0][1] == "https://www.youtube.com"


@pytest.fixture
def console(tmp_path, monkeypatch):
    recognizer = FakeRecognizer()
    synthesizer = FakeSynthesizer()
    monkeypatch.setattr(startup, "EMBED_API_READY", ReadinessSignal("console-api"))
    monkeypatch.setattr(startup, "build_recognizer", lambda config: recognizer)
    monkeypatch.setattr(startup, "build_synthesizer", lambda config: synthesizer)
    config = load_config(write_config(tmp_path, "[hold]\nsettle_delay = 0"))
    session = ConsoleSession(config, "abc123", "Intro to Rust")
    return session, recognizer, synthesizer


class TestConsoleSession:
    async def test_hold_commands(self, console, capsys):
        session, _, _ = console
        assert session.handle("down q")
        assert not session.pause.paused
        session.handle("up q")
        session.handle("load")
        session.handle("api")
        session.handle("down Q")
        session.handle("repeat q")
        assert session.pause.paused
        assert "Video paused (holding Q)" in capsys.readouterr().out
        session.handle("up q")
        assert not session.pause.paused
        await session.close()

    async def test_text_entry_target_ignored(self, console):
        session, _, _ = console
        session.handle("load")
        session.handle("down q INPUT")
        assert not session.pause.holding
        await session.close()

    async def test_voice_commands(self, console, capsys):
        session, recognizer, synthesizer = console
        session.handle("press touch")
        assert session.voice.state is VoiceState.RECORDING
        session.handle("release")
        assert recognizer.stops == 1
        recognizer.emit_result("what is a borrow")
        await session.voice.join()
        assert session.voice.indicator is Indicator.SPEAKING
        assert "Intro to Rust" in synthesizer.texts[0]
        synthesizer.finish()
        session.handle("context vid2 Intro to Go")
        assert session.voice.context_label == "Intro to Go"
        out = capsys.readouterr().out
        assert "[voice] Recording Listening..." in out
        assert "[voice] Idle" in out
        await session.close()

    async def test_status_help_and_quit(self, console, capsys):
        session, _, _ = console
        session.handle("status")
        session.handle("bogus")
        out = capsys.readouterr().out
        assert "surface=NotReady holding=False paused=False voice=Idle" in out
        assert ConsoleSession.HELP in out
        assert session.handle("") is True
        assert session.handle("quit") is False
        await session.close()
        await settle()
        assert session.pause.handle.closed


def test_main_reports_config_errors(tmp_path, capsys):
    path = write_config(tmp_path, "[answer]\nbackend = 'gpt'")
    assert main(["--config", str(path), "--video-id", "abc123"]) == 2
    assert "answer.backend" in capsys.readouterr().err
