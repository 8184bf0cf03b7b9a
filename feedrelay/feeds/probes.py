"""Network probes used by the ``shorts`` and ``country`` filters.

Each probe answers one yes/no question about a video and memoizes the answer
in an injected :class:`ProbeCache`, keyed by the video identifier.

Concurrency note
----------------
The caches are plain unsynchronised maps shared by every request.  Two
entries (or two requests) asking about the same identifier at the same time
may both miss and both probe.  That race is harmless: probes are idempotent
reads, both write the same verdict, and nothing ever deletes an entry.

A probe that fails on the network returns ``None`` and caches nothing; the
filter then keeps the entry (fail-open) so content is never dropped because
YouTube was unreachable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import httpx

from feedrelay.logging import get_logger

logger = get_logger()

SHORTS_URL = "https://www.youtube.com/shorts/{video_id}"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
UNAVAILABLE_PHRASE = "The uploader has not made this video available in your country"


class ProbeCache(Protocol):
    def get(self, key: str) -> Optional[bool]: ...

    def set(self, key: str, value: bool) -> None: ...


class InMemoryProbeCache:
    """Process-lifetime cache; entries never expire."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None) -> None:
        self._values: Dict[str, bool] = dict(initial or {})

    def get(self, key: str) -> Optional[bool]:
        return self._values.get(key)

    def set(self, key: str, value: bool) -> None:
        self._values[key] = value

    def __len__(self) -> int:
        return len(self._values)


@dataclass
class ProbeCaches:
    """One cache per probe kind."""

    shorts: ProbeCache = field(default_factory=InMemoryProbeCache)
    country: ProbeCache = field(default_factory=InMemoryProbeCache)


def video_id_from_entry_id(entry_id: str) -> Optional[str]:
    """Return ``ID`` from an entry id shaped ``scheme:kind:ID``, else ``None``."""
    parts = entry_id.split(":")
    if len(parts) != 3:
        return None
    return parts[2]


async def probe_is_short(
    client: httpx.AsyncClient, cache: ProbeCache, video_id: str
) -> Optional[bool]:
    """Is *video_id* a short?

    HEAD the shorts URL without following redirects: regular videos answer
    with a redirect to ``/watch``, shorts answer directly.
    """
    cached = cache.get(video_id)
    if cached is not None:
        return cached

    try:
        response = await client.head(
            SHORTS_URL.format(video_id=video_id), follow_redirects=False
        )
    except httpx.HTTPError as exc:
        logger.warning("probe_failed", probe="shorts", video_id=video_id, error=str(exc))
        return None

    verdict = "location" not in response.headers
    cache.set(video_id, verdict)
    return verdict


async def probe_is_geo_blocked(
    client: httpx.AsyncClient, cache: ProbeCache, video_id: str
) -> Optional[bool]:
    """Is *video_id* unavailable in the country this process runs in?"""
    cached = cache.get(video_id)
    if cached is not None:
        return cached

    try:
        response = await client.get(
            WATCH_URL.format(video_id=video_id), follow_redirects=False
        )
    except httpx.HTTPError as exc:
        logger.warning("probe_failed", probe="country", video_id=video_id, error=str(exc))
        return None

    verdict = UNAVAILABLE_PHRASE in response.text
    cache.set(video_id, verdict)
    return verdict
