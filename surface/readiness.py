"""Single-fire readiness signals observed via subscription."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List

LOGGER = logging.getLogger(__name__)


class ReadinessSignal:
    """One-time event; subscribers registered after firing are called at once."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._fired = False
        self._subscribers: List[Callable[[], None]] = []

    @property
    def fired(self) -> bool:
        return self._fired

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""

        if self._fired:
            self._notify(callback)
            return lambda: None
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def fire(self) -> bool:
        """Fire the signal. Returns False when it had already fired."""

        if self._fired:
            return False
        self._fired = True
        subscribers, self._subscribers = self._subscribers, []
        for callback in subscribers:
            self._notify(callback)
        return True

    def _notify(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            LOGGER.exception("Subscriber of readiness signal %r failed", self.name)

    async def wait(self) -> None:
        if self._fired:
            return
        future = asyncio.get_running_loop().create_future()

        def _resolve() -> None:
            if not future.done():
                future.set_result(None)

        unsubscribe = self.subscribe(_resolve)
        try:
            await future
        finally:
            unsubscribe()

    def __repr__(self) -> str:
        return f"ReadinessSignal({self.name!r}, fired={self._fired})"


# Fired once per process when the embed provider's player API has loaded.
EMBED_API_READY = ReadinessSignal("embed_api")
