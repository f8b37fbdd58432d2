"""Kokoro-FastAPI backed synthesizer with cancellable playback."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
import wave
from array import array
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

try:
    import requests
except ImportError as exc:  # pragma: no cover - import guard
    raise ImportError(
        "The requests package is required for the Kokoro TTS client. Install it with `uv pip install requests`."
    ) from exc

from .synthesizer import PlaybackSink, SpeechUtterance, SynthesisListener

LOGGER = logging.getLogger(__name__)

INTERRUPTED = "interrupted"

_ACCEPT_HEADER_MAP = {
    "wav": "audio/wav",
    "pcm": "application/octet-stream",
}


@dataclass(frozen=True)
class KokoroConfig:
    """Runtime configuration for Kokoro-FastAPI's OpenAI-compatible speech endpoint."""

    base_url: str = "http://127.0.0.1:8880/v1"
    endpoint: str = "/audio/speech"
    model: str = "kokoro"
    voice: Optional[str] = "af_heart"
    response_format: str = "pcm"
    sample_rate: int = 24_000
    stream_chunk_bytes: int = 32_768
    connect_timeout: float = 5.0
    read_timeout: float = 60.0
    extra_payload: Dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if not self.endpoint:
            raise ValueError("endpoint must be provided")
        if not self.endpoint.startswith("/"):
            object.__setattr__(self, "endpoint", f"/{self.endpoint}")
        if self.response_format not in _ACCEPT_HEADER_MAP:
            raise ValueError("response_format must be 'pcm' or 'wav'")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if self.stream_chunk_bytes <= 0:
            raise ValueError("stream_chunk_bytes must be positive")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("timeouts must be positive")

    def build_payload(self, utterance: SpeechUtterance) -> Dict[str, object]:
        payload: Dict[str, object] = dict(self.extra_payload)
        payload.setdefault("model", self.model)
        payload["input"] = utterance.text
        payload["response_format"] = self.response_format
        payload["speed"] = utterance.rate
        if self.voice:
            payload.setdefault("voice", self.voice)
        return payload

    def build_url(self) -> str:
        return f"{self.base_url}{self.endpoint}"

    def accept_header(self) -> str:
        return _ACCEPT_HEADER_MAP[self.response_format]


@dataclass
class _Job:
    utterance: SpeechUtterance
    listener: SynthesisListener
    cancelled: threading.Event = field(default_factory=threading.Event)


def apply_volume(pcm: bytes, volume: float) -> bytes:
    """Scale int16 PCM by a linear ``volume`` factor (0..1)."""

    if not pcm or volume >= 1.0:
        return pcm
    samples = array("h", pcm)
    for i, sample in enumerate(samples):
        samples[i] = max(min(int(round(sample * volume)), 32767), -32768)
    return samples.tobytes()


class KokoroSynthesizer:
    """Fetches audio for each utterance in a worker thread and plays it.

    Listener callbacks are posted back onto the event loop that called
    :meth:`speak`. Utterance pitch is not supported by Kokoro and is ignored.
    """

    def __init__(self, config: KokoroConfig, sink: PlaybackSink) -> None:
        self.config = config
        self.sink = sink
        self._session = requests.Session()
        self._current: Optional[_Job] = None

    def speak(self, utterance: SpeechUtterance, listener: SynthesisListener) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        job = _Job(utterance=utterance, listener=listener)
        self._current = job
        loop.run_in_executor(None, self._render, loop, job)

    def cancel(self) -> None:
        job, self._current = self._current, None
        if job is not None:
            job.cancelled.set()

    def close(self) -> None:
        self.cancel()
        self._session.close()

    def fetch_pcm(self, utterance: SpeechUtterance) -> Tuple[bytes, int]:
        """Return mono int16 PCM and its sample rate for ``utterance``."""

        response = self._session.post(
            self.config.build_url(),
            json=self.config.build_payload(utterance),
            headers={"accept": self.config.accept_header()},
            stream=True,
            timeout=(self.config.connect_timeout, self.config.read_timeout),
        )
        try:
            if response.status_code >= 400:
                raise RuntimeError(
                    f"Kokoro TTS request failed with status {response.status_code}: "
                    f"{self._extract_error_detail(response)}"
                )
            content_type = response.headers.get("Content-Type")
            if content_type and "application/json" in content_type.lower():
                raise RuntimeError(
                    f"Kokoro TTS returned JSON payload instead of audio: {self._extract_error_detail(response)}"
                )
            buffer = bytearray()
            for raw_chunk in response.iter_content(chunk_size=self.config.stream_chunk_bytes):
                if raw_chunk:
                    buffer.extend(raw_chunk)
            headers = {k.lower(): v for k, v in response.headers.items()}
        finally:
            response.close()

        if not buffer:
            raise RuntimeError("Kokoro synthesis returned no audio data")
        if self.config.response_format == "wav":
            return self._decode_wav(bytes(buffer))
        sample_rate = self._infer_sample_rate(headers, content_type) or self.config.sample_rate
        return bytes(buffer), sample_rate

    # ------------------------------------------------------------------
    # Worker

    def _render(self, loop: asyncio.AbstractEventLoop, job: _Job) -> None:
        listener = job.listener
        try:
            pcm, sample_rate = self.fetch_pcm(job.utterance)
            if job.cancelled.is_set():
                loop.call_soon_threadsafe(listener.on_error, INTERRUPTED)
                return
            pcm = apply_volume(pcm, job.utterance.volume)
            loop.call_soon_threadsafe(listener.on_start)
            completed = self.sink.play(pcm, sample_rate=sample_rate, cancelled=job.cancelled)
        except Exception as exc:
            LOGGER.warning("Speech synthesis failed: %s", exc)
            loop.call_soon_threadsafe(listener.on_error, str(exc) or exc.__class__.__name__)
            return
        if completed:
            loop.call_soon_threadsafe(listener.on_end)
        else:
            loop.call_soon_threadsafe(listener.on_error, INTERRUPTED)

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _decode_wav(data: bytes) -> Tuple[bytes, int]:
        with wave.open(io.BytesIO(data), "rb") as wav_file:
            if wav_file.getsampwidth() != 2 or wav_file.getnchannels() != 1:
                raise RuntimeError("Kokoro WAV output must be mono 16-bit")
            return wav_file.readframes(wav_file.getnframes()), wav_file.getframerate()

    @staticmethod
    def _infer_sample_rate(headers: Dict[str, str], content_type: Optional[str]) -> Optional[int]:
        for key in ("x-audio-sample-rate", "x-sample-rate", "sample-rate", "samplerate"):
            if key in headers:
                try:
                    return int(str(headers[key]).strip())
                except ValueError:
                    continue
        if content_type:
            for part in content_type.split(";"):
                if "=" in part:
                    name, value = part.split("=", 1)
                    if name.strip().lower() in {"rate", "samplerate"}:
                        try:
                            return int(value.strip())
                        except ValueError:
                            continue
        return None

    @staticmethod
    def _extract_error_detail(response: requests.Response) -> str:
        try:
            return str(response.json())
        except ValueError:
            return response.text[:400]
