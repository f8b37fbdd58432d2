"""Command channels that deliver player commands to a remote video surface."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any, Callable, Optional, Protocol, Sequence

from .embed import PROVIDER_ORIGIN


class ChannelKind(IntEnum):
    """Channel kinds, ordered by priority (lower value wins)."""

    DIRECT_HANDLE = 0
    MESSAGE_CHANNEL = 1


class ChannelSendError(RuntimeError):
    """Raised when a command could not be handed to the remote surface."""

    def __init__(self, message: str, *, kind: Optional[ChannelKind] = None) -> None:
        super().__init__(message)
        self.kind = kind


class CommandChannel(Protocol):
    """Protocol shared by command channels."""

    kind: ChannelKind

    @property
    def available(self) -> bool:  # pragma: no cover - structural
        ...

    def send(self, command: str, args: Sequence[Any] = ()) -> None:  # pragma: no cover - structural
        ...

    def close(self) -> None:  # pragma: no cover - structural
        ...


def build_command_envelope(command: str, args: Sequence[Any] = ()) -> str:
    """Return the JSON envelope understood by the embed's message listener."""

    if not command:
        raise ValueError("command must be provided")
    return json.dumps({"event": "command", "func": command, "args": list(args)})


class DirectHandleChannel:
    """Calls player methods (``pauseVideo()`` etc.) on a direct handle object."""

    kind = ChannelKind.DIRECT_HANDLE

    def __init__(self, player: Any) -> None:
        self._player = player

    @property
    def available(self) -> bool:
        return self._player is not None

    def send(self, command: str, args: Sequence[Any] = ()) -> None:
        if self._player is None:
            raise ChannelSendError("direct handle has been released", kind=self.kind)
        method = getattr(self._player, command, None)
        if not callable(method):
            raise ChannelSendError(f"player does not expose {command}()", kind=self.kind)
        method(*args)

    def close(self) -> None:
        self._player = None


class MessageChannel:
    """Posts JSON command envelopes to the embedded frame's window."""

    kind = ChannelKind.MESSAGE_CHANNEL

    def __init__(
        self,
        post: Optional[Callable[[str, str], None]],
        *,
        target_origin: str = PROVIDER_ORIGIN,
    ) -> None:
        if not target_origin or target_origin == "*":
            raise ValueError("target_origin must name the surface provider's origin")
        self._post = post
        self.target_origin = target_origin

    @property
    def available(self) -> bool:
        return self._post is not None

    def send(self, command: str, args: Sequence[Any] = ()) -> None:
        if self._post is None:
            raise ChannelSendError("frame window is not attached", kind=self.kind)
        self._post(build_command_envelope(command, args), self.target_origin)

    def close(self) -> None:
        self._post = None
