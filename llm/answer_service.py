"""Answer service contract and the placeholder backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

PLACEHOLDER_TEMPLATE = (
    'Based on the video "{label}", I understand you asked: "{question}". '
    "This feature is currently being developed."
)


@dataclass(frozen=True)
class AnswerRequest:
    """A viewer's question about the video they are watching."""

    question: str
    context_id: str
    context_label: str

    def __post_init__(self) -> None:
        if not self.question or not self.question.strip():
            raise ValueError("question must be non-empty")
        object.__setattr__(self, "question", self.question.strip())


class AnswerServiceError(RuntimeError):
    """Raised when the answer backend cannot produce an answer."""


class AnswerService(Protocol):
    """Protocol shared by answer backends."""

    async def resolve(self, request: AnswerRequest) -> str:  # pragma: no cover - structural
        ...


class PlaceholderAnswerService:
    """Echoes the question back inside a templated placeholder answer."""

    def __init__(self, template: str = PLACEHOLDER_TEMPLATE) -> None:
        self.template = template

    async def resolve(self, request: AnswerRequest) -> str:
        return self.template.format(label=request.context_label, question=request.question)
