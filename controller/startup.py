#!/usr/bin/env python3
"""Configuration loading, controller wiring, and the interactive console runner."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python 3.10 fallback
    import tomli as tomllib  # type: ignore

from asr import FasterWhisperConfig, RecognizerConfig, TranscriberRecognizer
from llm import AnswerService, PlaceholderAnswerService, VLLMAnswerService, VLLMConfig
from surface import EMBED_API_READY, EmbedSpec, RemoteSurfaceHandle, build_embed
from tts import KokoroConfig, KokoroSynthesizer

from .hold_pause import PauseOnHoldConfig, PauseOnHoldController
from .input_filter import InputTarget, KeyEvent, PointerEvent
from .voice_query import Indicator, VoiceQueryConfig, VoiceQueryController

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "viewer.toml"
ANSWER_BACKENDS = ("placeholder", "vllm")


class ConfigError(RuntimeError):
    """Raised when the TOML configuration is invalid."""


@dataclass(frozen=True)
class ViewerConfig:
    hold: PauseOnHoldConfig = field(default_factory=PauseOnHoldConfig)
    voice: VoiceQueryConfig = field(default_factory=VoiceQueryConfig)
    answer_backend: str = "placeholder"
    vllm: VLLMConfig = field(default_factory=VLLMConfig)
    recognizer: RecognizerConfig = field(default_factory=RecognizerConfig)
    whisper: FasterWhisperConfig = field(default_factory=FasterWhisperConfig)
    kokoro: KokoroConfig = field(default_factory=KokoroConfig)
    input_device: Optional[int] = None
    output_device: Optional[int] = None
    embed_origin: Optional[str] = None
    log_level: str = "INFO"
    config_path: Optional[Path] = None


# ----------------------------------------------------------------------
# Config loading


def _expand_path(raw: Optional[str], *, base: Path) -> Optional[Path]:
    if not raw:
        return None
    expanded = Path(os.path.expanduser(raw))
    if not expanded.is_absolute():
        expanded = (base / expanded).resolve()
    return expanded


def _table(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table.")
    return value


def _value(table: Mapping[str, Any], section: str, key: str, kind: Any, default: Any) -> Any:
    if key not in table:
        return default
    value = table[key]
    if kind is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(f"{section}.{key} must be {kind.__name__}, got {type(value).__name__}.")
    return value


def _build(factory: Any, section: str, **kwargs: Any) -> Any:
    try:
        return factory(**kwargs)
    except ValueError as exc:
        raise ConfigError(f"[{section}] {exc}") from exc


def load_config(path: Optional[Path]) -> ViewerConfig:
    """Load a viewer TOML file; ``None`` yields the built-in defaults."""

    if path is None:
        return ViewerConfig()
    if not path.exists():
        raise ConfigError(f"Viewer config not found: {path}")
    base_dir = path.parent.resolve()
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Viewer config {path} is not valid TOML: {exc}") from exc

    logging_raw = _table(data, "logging")
    log_path = _expand_path(_value(logging_raw, "logging", "log_path", str, None), base=base_dir)
    log_level = _value(logging_raw, "logging", "level", str, "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"logging.level `{log_level}` is not a logging level.")

    hold_raw = _table(data, "hold")
    hold = _build(
        PauseOnHoldConfig,
        "hold",
        hold_key=_value(hold_raw, "hold", "key", str, "q"),
        resume_on_release=_value(hold_raw, "hold", "resume_on_release", bool, False),
        settle_delay=_value(hold_raw, "hold", "settle_delay", float, 0.5),
        log_path=log_path,
    )

    surface_raw = _table(data, "surface")
    embed_origin = _value(surface_raw, "surface", "origin", str, None)

    voice_raw = _table(data, "voice")
    voice = _build(
        VoiceQueryConfig,
        "voice",
        rate=_value(voice_raw, "voice", "rate", float, 1.0),
        pitch=_value(voice_raw, "voice", "pitch", float, 1.0),
        volume=_value(voice_raw, "voice", "volume", float, 1.0),
        answer_timeout=_value(voice_raw, "voice", "answer_timeout", float, None),
        log_path=log_path,
    )

    answer_raw = _table(data, "answer")
    backend = _value(answer_raw, "answer", "backend", str, "placeholder").lower()
    if backend not in ANSWER_BACKENDS:
        raise ConfigError(f"answer.backend `{backend}` is not supported (choose from {', '.join(ANSWER_BACKENDS)}).")
    defaults = VLLMConfig()
    vllm = _build(
        VLLMConfig,
        "answer",
        base_url=_value(answer_raw, "answer", "base_url", str, defaults.base_url),
        model=_value(answer_raw, "answer", "model", str, defaults.model),
        temperature=_value(answer_raw, "answer", "temperature", float, defaults.temperature),
        max_tokens=_value(answer_raw, "answer", "max_tokens", int, defaults.max_tokens),
        timeout=_value(answer_raw, "answer", "timeout", float, defaults.timeout),
    )

    asr_raw = _table(data, "asr")
    recognizer = _build(
        RecognizerConfig,
        "asr",
        max_capture_seconds=_value(asr_raw, "asr", "max_capture_seconds", float, 10.0),
        min_capture_seconds=_value(asr_raw, "asr", "min_capture_seconds", float, 0.3),
    )
    whisper = _build(
        FasterWhisperConfig,
        "asr",
        model=_value(asr_raw, "asr", "model", str, "base.en"),
        device=_value(asr_raw, "asr", "device", str, "cpu"),
        compute_type=_value(asr_raw, "asr", "compute_type", str, "int8"),
        language=_value(asr_raw, "asr", "language", str, "en"),
    )

    tts_raw = _table(data, "tts")
    kokoro_defaults = KokoroConfig()
    kokoro = _build(
        KokoroConfig,
        "tts",
        base_url=_value(tts_raw, "tts", "base_url", str, kokoro_defaults.base_url),
        voice=_value(tts_raw, "tts", "voice", str, kokoro_defaults.voice),
        response_format=_value(tts_raw, "tts", "response_format", str, kokoro_defaults.response_format),
        sample_rate=_value(tts_raw, "tts", "sample_rate", int, kokoro_defaults.sample_rate),
    )

    return ViewerConfig(
        hold=hold,
        voice=voice,
        answer_backend=backend,
        vllm=vllm,
        recognizer=recognizer,
        whisper=whisper,
        kokoro=kokoro,
        input_device=_value(asr_raw, "asr", "input_device", int, None),
        output_device=_value(tts_raw, "tts", "output_device", int, None),
        embed_origin=embed_origin,
        log_level=log_level,
        config_path=path,
    )


# ----------------------------------------------------------------------
# Wiring


def build_answer_service(config: ViewerConfig) -> AnswerService:
    if config.answer_backend == "vllm":
        return VLLMAnswerService(config.vllm)
    return PlaceholderAnswerService()


def build_recognizer(config: ViewerConfig) -> Optional[TranscriberRecognizer]:
    """Microphone + Faster-Whisper recognizer, or None when the platform lacks it."""

    from asr import faster_whisper

    if faster_whisper.WhisperModel is None:
        LOGGER.warning("faster-whisper is not installed; voice questions disabled")
        return None
    try:
        from asr.capture import SoundDeviceCapture, default_input_available
    except (ImportError, OSError) as exc:
        LOGGER.warning("Audio capture unavailable: %s", exc)
        return None
    if config.input_device is None and not default_input_available():
        LOGGER.warning("No audio input device found; voice questions disabled")
        return None
    capture = SoundDeviceCapture(
        sample_rate=config.recognizer.gate.sample_rate,
        device=config.input_device,
    )
    transcriber = faster_whisper.FasterWhisperTranscriber(config.whisper)
    return TranscriberRecognizer(capture, transcriber, config.recognizer)


def build_synthesizer(config: ViewerConfig) -> Optional[KokoroSynthesizer]:
    try:
        from tts.playback import SoundDevicePlayback, default_output_available
    except (ImportError, OSError) as exc:
        LOGGER.warning("Audio playback unavailable: %s", exc)
        return None
    if config.output_device is None and not default_output_available():
        LOGGER.warning("No audio output device found; voice answers disabled")
        return None
    return KokoroSynthesizer(config.kokoro, SoundDevicePlayback(device=config.output_device))


def build_surface(
    content_id: str,
    title: str,
    post: Any,
    *,
    origin: Optional[str] = None,
) -> Tuple[EmbedSpec, RemoteSurfaceHandle]:
    embed = build_embed(content_id, title, origin=origin)
    handle = RemoteSurfaceHandle(content_id)
    handle.attach_message_target(post)
    return embed, handle


# ----------------------------------------------------------------------
# Console runner


class _LoggingPlayer:
    """Direct handle stand-in that reports the player API calls it receives."""

    def __init__(self, surface_id: str) -> None:
        self.surface_id = surface_id

    def pauseVideo(self) -> None:  # noqa: N802 - player API name
        LOGGER.info("=> %s pauseVideo()", self.surface_id)

    def playVideo(self) -> None:  # noqa: N802 - player API name
        LOGGER.info("=> %s playVideo()", self.surface_id)


def _post_message(data: str, target_origin: str) -> None:
    LOGGER.info("=> postMessage %s %s", target_origin, data)


class ConsoleSession:
    """Drives both controllers from line commands (see ``HELP``)."""

    HELP = (
        "commands: load | api | down <key> [tag] | repeat <key> | up <key> | "
        "press [touch] | release [touch] | context <id> <title> | status | quit"
    )

    def __init__(self, config: ViewerConfig, content_id: str, title: str) -> None:
        self.config = config
        self.embed, handle = build_surface(content_id, title, _post_message, origin=config.embed_origin)
        self.pause = PauseOnHoldController(
            handle,
            config.hold,
            player_factory=_LoggingPlayer,
            api_signal=EMBED_API_READY,
            on_indicator=self._pause_indicator,
        )
        self.voice = VoiceQueryController(
            recognizer=build_recognizer(config),
            synthesizer=build_synthesizer(config),
            answers=build_answer_service(config),
            context_id=content_id,
            context_label=title,
            config=config.voice,
            on_indicator=self._voice_indicator,
        )

    def _pause_indicator(self, paused: bool) -> None:
        print(self.config.hold.indicator_text if paused else "(playing)")

    def _voice_indicator(self, indicator: Indicator) -> None:
        print(f"[voice] {indicator.value} {self.voice.label}".rstrip())

    def handle(self, line: str) -> bool:
        parts = line.split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        if command == "quit":
            return False
        if command == "load":
            self.pause.on_surface_load()
        elif command == "api":
            EMBED_API_READY.fire()
        elif command in ("down", "repeat") and args:
            target = InputTarget(tag_name=args[1]) if len(args) > 1 else None
            self.pause.on_hold_start(KeyEvent(key=args[0], target=target, repeat=command == "repeat"))
        elif command == "up" and args:
            self.pause.on_hold_end(KeyEvent(key=args[0]))
        elif command == "press":
            self.voice.on_press(PointerEvent(pointer_type=args[0] if args else "mouse"))
        elif command == "release":
            self.voice.on_release(PointerEvent(pointer_type=args[0] if args else "mouse"))
        elif command == "context" and len(args) >= 2:
            self.voice.set_context(args[0], " ".join(args[1:]))
        elif command == "status":
            print(
                f"surface={self.pause.handle.readiness.value} holding={self.pause.holding} "
                f"paused={self.pause.paused} voice={self.voice.indicator.value}"
            )
        else:
            print(self.HELP)
        return True

    async def close(self) -> None:
        self.voice.close()
        await self.voice.join()
        self.pause.close()


async def run_console(config: ViewerConfig, content_id: str, title: str) -> int:
    session = ConsoleSession(config, content_id, title)
    print(f"Embed: {session.embed.src}")
    print(ConsoleSession.HELP)
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            if not session.handle(line):
                break
    finally:
        await session.close()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Drive the hold-to-pause and push-to-talk controllers from a console.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to viewer config (TOML).")
    parser.add_argument("--video-id", required=True, help="Embed content id of the video.")
    parser.add_argument("--title", default="Untitled video", help="Video title used as answer context.")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return asyncio.run(run_console(config, args.video_id, args.title))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
