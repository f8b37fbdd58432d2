"""Runtime capability queries for optional platform features."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Capability(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"


def probe_voice_capability(recognizer: Optional[Any], synthesizer: Optional[Any]) -> Capability:
    """Voice queries need both a recognizer and a synthesizer."""

    if recognizer is None or synthesizer is None:
        return Capability.UNAVAILABLE
    return Capability.AVAILABLE
