"""Remote video surface handle, command channels, readiness, and embed helpers."""

from .channels import (
    ChannelKind,
    ChannelSendError,
    CommandChannel,
    DirectHandleChannel,
    MessageChannel,
    build_command_envelope,
)
from .embed import EMBED_ALLOW, PROVIDER_ORIGIN, EmbedSpec, build_embed
from .handle import Readiness, RemoteSurfaceHandle
from .readiness import EMBED_API_READY, ReadinessSignal

__all__ = [
    "ChannelKind",
    "ChannelSendError",
    "CommandChannel",
    "DirectHandleChannel",
    "MessageChannel",
    "build_command_envelope",
    "EMBED_ALLOW",
    "PROVIDER_ORIGIN",
    "EmbedSpec",
    "build_embed",
    "Readiness",
    "RemoteSurfaceHandle",
    "EMBED_API_READY",
    "ReadinessSignal",
]
