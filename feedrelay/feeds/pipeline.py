"""Fetch → parse → filter, with a single error boundary.

``load_feed`` is the only entry point the HTTP layer and the CLI use for the
source side of a request.  Only :class:`~feedrelay.errors.FeedError`
subclasses leave it; any other exception is logged and wrapped in
:class:`~feedrelay.errors.UnknownError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict

import httpx

from feedrelay.errors import FeedError, UnknownError
from feedrelay.feeds.fetcher import fetch_feed
from feedrelay.feeds.filters import EntryFilter
from feedrelay.feeds.models import NormalizedFeed
from feedrelay.feeds.parser import parse_feed
from feedrelay.feeds.probes import ProbeCaches
from feedrelay.logging import get_logger

logger = get_logger()


@dataclass
class FeedQuery:
    """What a client asked for: the source feed and its filters."""

    url: str
    includes: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)


@dataclass
class FeedResult:
    feed: NormalizedFeed
    headers: Dict[str, str]
    source_entries: int


async def load_feed(
    client: httpx.AsyncClient, caches: ProbeCaches, query: FeedQuery
) -> FeedResult:
    """Fetch, parse and filter the feed described by *query*.

    Raises:
        FetchError, ParseError, UnsupportedFormatError, UnknownError
    """
    try:
        raw = await fetch_feed(client, query.url)
        parsed = parse_feed(raw)
        entry_filter = EntryFilter(
            client,
            caches,
            includes=query.includes,
            excludes=query.excludes,
            filters=query.filters,
            source=query.url,
        )
        entries = await entry_filter.apply(parsed.entries)
    except FeedError:
        raise
    except Exception as exc:
        logger.exception("feed_pipeline_failed", url=query.url)
        raise UnknownError(query.url, str(exc)) from exc

    logger.info(
        "feed_loaded",
        url=query.url,
        kept=len(entries),
        total=len(parsed.entries),
    )
    return FeedResult(
        feed=replace(parsed, entries=entries),
        headers=raw.headers,
        source_entries=len(parsed.entries),
    )
