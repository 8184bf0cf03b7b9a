"""Feed endpoints.

Routes
------
GET /rss        ?url=&includetext=&excludetext=&filter=               → Atom
GET /podcast    ?url=&includetext=&excludetext=&filter=&title=&description=  → RSS

List parameters accept comma-separated values and/or repeated keys.
Fetch, parse and format failures answer 400 ``{"error": ...}``; anything
else answers 500.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from feedrelay.api.params import parse_feed_query
from feedrelay.config import settings
from feedrelay.errors import FeedError
from feedrelay.feeds.converter import convert_feed
from feedrelay.feeds.pipeline import load_feed
from feedrelay.feeds.writer import write_atom, write_rss
from feedrelay.logging import get_logger
from feedrelay.podcast.merger import EpisodeMerger

router = APIRouter()
logger = get_logger()

ATOM_MEDIA_TYPE = "application/atom+xml; charset=utf-8"
RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    error: str


_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing url, or the feed could not be used"},
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _feed_error(exc: FeedError) -> JSONResponse:
    return _error(exc.status_code, exc.client_message())


def _relay_headers(headers: dict[str, str]) -> dict[str, str]:
    # The server stamps its own Date; a second one would be sent alongside it.
    return {key: value for key, value in headers.items() if key != "date"}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/rss", responses=_ERROR_RESPONSES, response_class=Response)
async def rss(request: Request) -> Response:
    """Return the source Atom feed with filtered entries."""
    query = parse_feed_query(request)
    if query is None:
        return _error(400, "Failed to parse params")

    state = request.app.state
    try:
        result = await load_feed(state.http, state.probes, query)
    except FeedError as exc:
        return _feed_error(exc)

    return Response(
        content=write_atom(result.feed),
        media_type=ATOM_MEDIA_TYPE,
        headers=_relay_headers(result.headers),
    )


@router.get("/podcast", responses=_ERROR_RESPONSES, response_class=Response)
async def podcast(request: Request) -> Response:
    """Return the feed as an RSS podcast backed by the catalog and downloaded audio.

    Blocks until the current download batch has finished.
    """
    query = parse_feed_query(request)
    if query is None:
        return _error(400, "Failed to parse params")

    title = request.query_params.get("title")
    description = request.query_params.get("description")
    state = request.app.state

    try:
        result = await load_feed(state.http, state.probes, query)
    except FeedError as exc:
        return _feed_error(exc)

    try:
        converted = convert_feed(result.feed)
        if title:
            converted.title = title
        if description:
            converted.description = description

        merger = EpisodeMerger(
            state.db,
            state.downloader,
            state.thumbnails,
            base_url=settings.base_url,
            batch_size=settings.download_batch_size,
        )
        merged = await merger.merge(query.url, converted)
    except Exception:
        logger.exception("podcast_merge_failed", url=query.url)
        return _error(500, "Internal server error")

    logger.info(
        "podcast_sent",
        url=query.url,
        stored=merged.stored_items,
        from_source=merged.source_items,
        source_entries=result.source_entries,
    )
    return Response(
        content=write_rss(merged.feed),
        media_type=RSS_MEDIA_TYPE,
        headers=_relay_headers(result.headers),
    )
