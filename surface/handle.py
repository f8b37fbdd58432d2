"""Handle to a remote video surface and the channels that command it."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from .channels import ChannelKind, ChannelSendError, CommandChannel, DirectHandleChannel, MessageChannel
from .readiness import ReadinessSignal


class Readiness(str, Enum):
    NOT_READY = "NotReady"
    READY = "Ready"


class RemoteSurfaceHandle:
    """Opaque reference to an embedded surface plus its command channels."""

    def __init__(self, surface_id: str, channels: Sequence[CommandChannel] = ()) -> None:
        if not surface_id:
            raise ValueError("surface_id must be provided")
        self.surface_id = surface_id
        self._channels: List[CommandChannel] = []
        self._ready = ReadinessSignal(f"surface:{surface_id}")
        self._closed = False
        for channel in channels:
            self.add_channel(channel)

    # ------------------------------------------------------------------
    # Readiness

    @property
    def readiness(self) -> Readiness:
        return Readiness.READY if self._ready.fired else Readiness.NOT_READY

    def mark_ready(self) -> bool:
        """Flip NotReady -> Ready. Only the first call has any effect."""

        if self._closed:
            return False
        return self._ready.fire()

    def on_ready(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._ready.subscribe(callback)

    # ------------------------------------------------------------------
    # Channels

    @property
    def channels(self) -> List[CommandChannel]:
        return list(self._channels)

    @property
    def closed(self) -> bool:
        return self._closed

    def add_channel(self, channel: CommandChannel) -> None:
        if self._closed:
            raise RuntimeError(f"surface {self.surface_id} has been closed")
        self._channels.append(channel)
        self._channels.sort(key=lambda item: item.kind)

    def attach_direct_handle(self, player: Any) -> DirectHandleChannel:
        channel = DirectHandleChannel(player)
        self.add_channel(channel)
        return channel

    def attach_message_target(self, post: Optional[Callable[[str, str], None]], **kwargs: Any) -> MessageChannel:
        channel = MessageChannel(post, **kwargs)
        self.add_channel(channel)
        return channel

    def primary_channel(self) -> Optional[CommandChannel]:
        for channel in self._channels:
            if channel.available:
                return channel
        return None

    def send(self, command: str, args: Sequence[Any] = ()) -> ChannelKind:
        """Send ``command`` over the highest-priority available channel.

        Raises :class:`ChannelSendError` when no channel is available or the
        channel raised while dispatching.
        """

        if self._closed:
            raise ChannelSendError(f"surface {self.surface_id} has been closed")
        channel = self.primary_channel()
        if channel is None:
            raise ChannelSendError(f"surface {self.surface_id} has no command channel")
        try:
            channel.send(command, args)
        except ChannelSendError:
            raise
        except Exception as exc:
            raise ChannelSendError(
                f"{channel.kind.name.lower()} send of {command} failed: {exc}",
                kind=channel.kind,
            ) from exc
        return channel.kind

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for channel in self._channels:
            channel.close()
        self._channels.clear()

    def __repr__(self) -> str:
        kinds = ",".join(channel.kind.name for channel in self._channels)
        return f"RemoteSurfaceHandle({self.surface_id!r}, {self.readiness.value}, [{kinds}])"
