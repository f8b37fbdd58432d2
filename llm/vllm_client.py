"""Answer backend using vLLM's OpenAI-compatible chat completions API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Sequence

try:
    import requests
except ImportError as exc:  # pragma: no cover - import guard
    raise ImportError(
        "The requests package is required for the vLLM client. Install it with `uv pip install requests`."
    ) from exc

from .answer_service import AnswerRequest, AnswerServiceError


@dataclass(frozen=True)
class VLLMConfig:
    """Configuration for the :class:`VLLMAnswerService`."""

    base_url: str = "http://127.0.0.1:8000/v1"
    model: str = "hugging-quants/Meta-Llama-3.1-8B-Instruct-GPTQ-INT4"
    temperature: float = 0.3
    top_p: float = 0.9
    max_tokens: int = 160
    timeout: float = 30.0
    system_prompt: str = (
        "You answer spoken questions from someone watching a video.\n"
        "Your answer will be read aloud, so reply in two or three plain sentences.\n"
        "No markdown, no lists, no URLs.\n"
        "If the question cannot be answered from the video title, say so briefly."
    )
    stop: Sequence[str] = ()
    user_prompt_template: str = (
        "Video title: {label}\n"
        "Video id: {context_id}\n\n"
        "Question: {question}"
    )

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))


class VLLMAnswerService:
    """Minimal chat completions client; blocking HTTP runs in a worker thread."""

    def __init__(self, config: VLLMConfig) -> None:
        self.config = config
        self._session = requests.Session()

    async def resolve(self, request: AnswerRequest) -> str:
        return await asyncio.to_thread(self.answer, request)

    def answer(self, request: AnswerRequest) -> str:
        """Blocking variant of :meth:`resolve`."""

        payload = self._build_payload(request)
        try:
            response = self._session.post(
                f"{self.config.base_url}/chat/completions",
                json=payload,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise AnswerServiceError(f"vLLM request failed: {exc}") from exc
        if response.status_code != 200:
            raise AnswerServiceError(
                f"vLLM request failed with {response.status_code}: {response.text.strip()}"
            )
        try:
            data: Dict[str, object] = response.json()
        except ValueError as exc:
            raise AnswerServiceError("vLLM response was not JSON") from exc
        content = self._extract_content(data).strip()
        if not content:
            raise AnswerServiceError("vLLM response did not include completion content.")
        max_chars = int(self.config.max_tokens * 4.2)
        if len(content) > max_chars:
            content = content[:max_chars].rstrip()
        return content

    def close(self) -> None:
        self._session.close()

    def _build_payload(self, request: AnswerRequest) -> Dict[str, object]:
        cfg = self.config
        user_prompt = cfg.user_prompt_template.format(
            label=request.context_label,
            context_id=request.context_id,
            question=request.question,
        )
        payload: Dict[str, object] = {
            "model": cfg.model,
            "messages": [
                {"role": "system", "content": cfg.system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "max_tokens": cfg.max_tokens,
        }
        if cfg.stop:
            payload["stop"] = list(cfg.stop)
        return payload

    @staticmethod
    def _extract_content(data: Dict[str, object]) -> str:
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            choice = choices[0]
            if isinstance(choice, dict):
                message = choice.get("message")
                if isinstance(message, dict):
                    content = message.get("content")
                    if isinstance(content, str):
                        return content
                content = choice.get("text")
                if isinstance(content, str):
                    return content
        return ""

    def __enter__(self) -> "VLLMAnswerService":  # pragma: no cover - convenience
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        self.close()
