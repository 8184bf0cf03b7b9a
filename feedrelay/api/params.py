"""Query-string parsing shared by the feed endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from feedrelay.feeds.pipeline import FeedQuery


def extract_list(request: Request, name: str) -> list[str]:
    """Collect a list parameter given as CSV, repeated keys, or both.

    Values are case-folded; empty items (``a,,b`` or ``excludetext=``) are
    dropped so they cannot match every entry.
    """
    terms: list[str] = []
    for value in request.query_params.getlist(name):
        terms.extend(part.casefold() for part in value.split(","))
    return [term for term in terms if term]


def parse_feed_query(request: Request) -> Optional[FeedQuery]:
    """Return the :class:`FeedQuery` for *request*, or ``None`` without a url."""
    url = request.query_params.get("url")
    if not url:
        return None
    return FeedQuery(
        url=url,
        includes=extract_list(request, "includetext"),
        excludes=extract_list(request, "excludetext"),
        filters=extract_list(request, "filter"),
    )
