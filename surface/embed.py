"""Embed construction for the remote video surface."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

PROVIDER_ORIGIN = "https://www.youtube.com"
EMBED_ALLOW = (
    "accelerometer; autoplay; clipboard-write; encrypted-media; "
    "gyroscope; picture-in-picture; web-share"
)
DEFAULT_REFERRER_POLICY = "strict-origin-when-cross-origin"

_CONTENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class EmbedSpec:
    """Everything a host needs to mount the embed frame."""

    content_id: str
    title: str
    src: str
    allow: str = EMBED_ALLOW
    allow_fullscreen: bool = True
    referrer_policy: str = DEFAULT_REFERRER_POLICY


def build_embed(
    content_id: str,
    title: str,
    *,
    origin: Optional[str] = None,
    provider: str = PROVIDER_ORIGIN,
) -> EmbedSpec:
    """Build the embed description with the player control API enabled.

    ``origin`` is the hosting page's origin; passing it lets the provider
    accept postMessage commands from that page.
    """

    if not content_id or not _CONTENT_ID_PATTERN.match(content_id):
        raise ValueError(f"content id must be a non-empty URL-safe token: {content_id!r}")
    query = {"rel": "0", "enablejsapi": "1"}
    if origin:
        query["origin"] = origin.rstrip("/")
    src = f"{provider.rstrip('/')}/embed/{content_id}?{urlencode(query)}"
    return EmbedSpec(content_id=content_id, title=title, src=src)
