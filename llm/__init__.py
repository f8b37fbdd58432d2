"""Answer backends for viewer questions."""

from .answer_service import (
    AnswerRequest,
    AnswerService,
    AnswerServiceError,
    PlaceholderAnswerService,
)
from .vllm_client import VLLMAnswerService, VLLMConfig

__all__ = [
    "AnswerRequest",
    "AnswerService",
    "AnswerServiceError",
    "PlaceholderAnswerService",
    "VLLMAnswerService",
    "VLLMConfig",
]
