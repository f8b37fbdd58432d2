"""JSON-lines transition logging shared by the controllers."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

LOGGER = logging.getLogger("viewer.transitions")
if not LOGGER.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    LOGGER.addHandler(handler)
LOGGER.setLevel(logging.INFO)
LOGGER.propagate = False


def truncate(text: str, *, limit: int = 120) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class TransitionLog:
    """Writes one JSON object per state transition, optionally to a file too."""

    def __init__(self, component: str, log_path: Optional[Path] = None) -> None:
        self.component = component
        self._log_file = None
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._log_file = log_path.open("a", encoding="utf-8")

    def emit(self, state: str, *, session: Optional[int] = None, **metadata: Any) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "component": self.component,
            "state": state,
        }
        if session is not None:
            payload["session"] = session
        payload.update(metadata)
        line = json.dumps(payload, ensure_ascii=False, default=str)
        LOGGER.info(line)
        if self._log_file is not None:
            self._log_file.write(line + "\n")
            self._log_file.flush()
        return line

    def close(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
