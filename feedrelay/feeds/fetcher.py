"""HTTP fetcher for source feeds."""

from __future__ import annotations

import httpx

from feedrelay.config import settings
from feedrelay.errors import FetchError
from feedrelay.feeds.models import PASSTHROUGH_HEADERS, RawResponse
from feedrelay.logging import get_logger

logger = get_logger()


def build_client() -> httpx.AsyncClient:
    """Return the shared client used for feed fetches and filter probes.

    The timeout bounds every outbound request; redirects are followed by
    default and disabled per call where a probe needs to see them.
    """
    return httpx.AsyncClient(
        headers={"User-Agent": settings.user_agent},
        timeout=settings.request_timeout,
        follow_redirects=True,
    )


def _copy_headers(headers: httpx.Headers) -> dict[str, str]:
    return {
        key.lower(): value
        for key, value in headers.items()
        if key.lower() in PASSTHROUGH_HEADERS
    }


async def fetch_feed(client: httpx.AsyncClient, url: str) -> RawResponse:
    """GET *url* once and return its body plus the passthrough headers.

    Raises:
        FetchError: On any transport failure or a non-2xx status.  There is
            no retry; the caller surfaces the error.
    """
    logger.debug("feed_fetch_started", url=url)
    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        logger.error("feed_fetch_failed", url=url, error=str(exc))
        raise FetchError(url, str(exc)) from exc

    if not response.is_success:
        logger.error(
            "feed_fetch_failed",
            url=url,
            status_code=response.status_code,
            reason=response.reason_phrase,
        )
        raise FetchError(url, f"{response.status_code} {response.reason_phrase}")

    raw = RawResponse(url=url, body=response.content, headers=_copy_headers(response.headers))
    logger.debug("feed_fetched", url=url, bytes=len(raw.body))
    return raw
