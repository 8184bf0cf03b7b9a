"""Parse fetched feed bytes into the normalized Atom model.

feedparser does the dialect sniffing and the heavy lifting; this module only
classifies the result and copies the fields we care about into plain
dataclasses.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import feedparser

from feedrelay.errors import ParseError, UnsupportedFormatError
from feedrelay.feeds.models import (
    Category,
    Link,
    NormalizedEntry,
    NormalizedFeed,
    Person,
    RawResponse,
)
from feedrelay.logging import get_logger

logger = get_logger()

# feedparser flattens namespaced elements to ``<prefix>_<name>`` keys.
EXTENSION_PREFIXES = ("media_", "yt_", "itunes_", "georss_", "slash_", "thr_", "wfw_", "psc_")


def _plain(value: Any) -> Any:
    """Convert FeedParserDict trees into JSON-friendly builtins."""
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items() if not str(k).endswith("_parsed")}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _extensions(node: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: _plain(value)
        for key, value in node.items()
        if key.startswith(EXTENSION_PREFIXES)
        and not key.endswith(("_detail", "_parsed"))
    }


def _links(raw_links: Iterable[Mapping[str, Any]]) -> list[Link]:
    return [
        Link(href=link["href"], rel=link.get("rel"), type=link.get("type"))
        for link in raw_links
        if link.get("href")
    ]


def _people(raw_people: Iterable[Mapping[str, Any]]) -> list[Person]:
    people = []
    for person in raw_people:
        if not (person.get("name") or person.get("email")):
            continue
        people.append(
            Person(name=person.get("name"), email=person.get("email"), uri=person.get("href"))
        )
    return people


def _categories(raw_tags: Iterable[Mapping[str, Any]]) -> list[Category]:
    return [
        Category(term=tag["term"], scheme=tag.get("scheme") or None, label=tag.get("label"))
        for tag in raw_tags
        if tag.get("term")
    ]


def _entry(raw: Mapping[str, Any]) -> NormalizedEntry:
    links = _links(raw.get("links", []))
    content = raw.get("content") or []
    return NormalizedEntry(
        id=raw.get("id") or (links[0].href if links else ""),
        title=raw.get("title", ""),
        links=links,
        summary=raw.get("summary") or None,
        content=(content[0].get("value") or None) if content else None,
        authors=_people(raw.get("authors", [])),
        categories=_categories(raw.get("tags", [])),
        updated=raw.get("updated") or None,
        published=raw.get("published") or None,
        rights=raw.get("rights") or None,
        extensions=_extensions(raw),
    )


def _logo(raw_feed: Mapping[str, Any]) -> str | None:
    if raw_feed.get("logo"):
        return raw_feed["logo"]
    image = raw_feed.get("image") or {}
    return image.get("href") or None


def parse_feed(raw: RawResponse) -> NormalizedFeed:
    """Parse *raw* and return the normalized Atom feed.

    Raises:
        ParseError: The body is not a recognisable feed at all.
        UnsupportedFormatError: The body is a feed, but not Atom.
    """
    try:
        parsed = feedparser.parse(raw.body)
    except Exception as exc:  # feedparser raises very little, but XML backends can
        raise ParseError(raw.url, str(exc)) from exc

    version = parsed.get("version") or ""
    if not version:
        detail = str(parsed.get("bozo_exception") or "no feed found in document")
        logger.error("feed_parse_failed", url=raw.url, error=detail)
        raise ParseError(raw.url, detail)

    if not version.startswith("atom"):
        logger.warning("feed_format_unsupported", url=raw.url, version=version)
        raise UnsupportedFormatError(raw.url, version)

    if parsed.get("bozo"):
        # Recoverable problems (encoding overrides, loose markup) still yield data.
        logger.debug("feed_parse_recovered", url=raw.url, error=str(parsed.get("bozo_exception")))

    raw_feed = parsed.feed
    return NormalizedFeed(
        id=raw_feed.get("id", ""),
        title=raw_feed.get("title", ""),
        subtitle=raw_feed.get("subtitle") or None,
        updated=raw_feed.get("updated") or None,
        links=_links(raw_feed.get("links", [])),
        logo=_logo(raw_feed),
        icon=raw_feed.get("icon") or None,
        rights=raw_feed.get("rights") or None,
        generator=raw_feed.get("generator") or None,
        authors=_people(raw_feed.get("authors", [])),
        categories=_categories(raw_feed.get("tags", [])),
        extensions=_extensions(raw_feed),
        entries=[_entry(entry) for entry in parsed.entries],
    )
