"""Error taxonomy for the feed pipeline.

Every stage of fetch → parse → filter → convert either returns its value or
raises one of the :class:`FeedError` subclasses below.  The HTTP layer maps
them onto responses through :attr:`FeedError.status_code` and
:meth:`FeedError.client_message`; nothing else is allowed to escape the
pipeline (see :func:`feedrelay.feeds.pipeline.load_feed`).
"""

from __future__ import annotations


class FeedError(Exception):
    """Base class for failures that end a feed request."""

    kind = "UNKNOWN"
    status_code = 500

    def __init__(self, url: str, detail: str = "") -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"{self.kind} {url}: {detail}" if detail else f"{self.kind} {url}")

    def client_message(self) -> str:
        return "Internal server error"


class FetchError(FeedError):
    """Transport failure or non-2xx status while fetching the source feed."""

    kind = "FETCH"
    status_code = 400

    def client_message(self) -> str:
        return f"Failed to fetch RSS feed {self.url}"


class ParseError(FeedError):
    """The body arrived but could not be parsed as a syndication feed."""

    kind = "PARSE"
    status_code = 400

    def client_message(self) -> str:
        return f"Failed to parse RSS feed {self.url}"


class UnsupportedFormatError(FeedError):
    """The body is a recognised feed, but not Atom."""

    kind = "UNSUPPORTED"
    status_code = 400

    def client_message(self) -> str:
        return f"Unsupported RSS feed {self.url}"


class UnknownError(FeedError):
    """Anything else that went wrong inside the pipeline."""

    kind = "UNKNOWN"
    status_code = 500


class MediaToolError(Exception):
    """yt-dlp exited with an error, timed out or produced no file."""
