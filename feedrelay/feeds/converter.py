"""Atom → RSS conversion.

Field mapping (RSS field ← Atom source, fallback, omitted when):

    channel.title          ← feed.title
    channel.description    ← feed.subtitle, else feed.title
    channel.link           ← feed.links[0].href, else ""
    channel.lastBuildDate  ← feed.updated                 omitted if unparseable
    channel.copyright      ← feed.rights                  omitted if absent
    channel.generator      ← feed.generator               omitted if absent
    channel.image          ← feed.logo (+ title, link)    omitted if no logo
    channel itunes:*       ← feed itunes_* extensions     omitted if absent

    item.title             ← entry.title                  omitted if empty
    item.link              ← entry.links[0].href, else watch URL from "yt:video:ID"
    item.description       ← summary, else content, else title, else ""
    item.guid              ← entry.id (isPermaLink=false) omitted if empty
    item.pubDate           ← entry.updated                omitted if unparseable
    item.author            ← authors[0].email, else authors[0].name
    item.content:encoded   ← entry.content                omitted if absent
    item.category          ← {name: term, domain: scheme?}
    item itunes:*/media:*  ← entry extensions             omitted if absent
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from dateutil import parser as date_parser

from feedrelay.feeds.models import (
    Category,
    ConvertedFeed,
    ConvertedItem,
    FeedImage,
    ItemCategory,
    NormalizedEntry,
    NormalizedFeed,
)

_VIDEO_ID_RE = re.compile(r"yt:video:([^:]+)")
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

_FEED_EXTENSION_PREFIXES = ("itunes_",)
_ITEM_EXTENSION_PREFIXES = ("itunes_", "media_")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse *value* leniently; ``None`` when absent or invalid.

    Naive timestamps are taken to be UTC.
    """
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _select(extensions: Dict[str, Any], prefixes: tuple[str, ...]) -> Dict[str, Any]:
    return {key: value for key, value in extensions.items() if key.startswith(prefixes)}


def watch_url_from_entry_id(entry_id: str) -> Optional[str]:
    match = _VIDEO_ID_RE.search(entry_id or "")
    if match is None:
        return None
    return WATCH_URL.format(video_id=match.group(1))


def _category(category: Union[Category, str]) -> ItemCategory:
    if isinstance(category, str):
        return ItemCategory(name=category)
    return ItemCategory(name=category.term, domain=category.scheme)


def convert_entry(entry: NormalizedEntry) -> ConvertedItem:
    link = entry.links[0].href if entry.links else None
    if not link:
        link = watch_url_from_entry_id(entry.id)

    author = None
    if entry.authors:
        author = entry.authors[0].email or entry.authors[0].name

    return ConvertedItem(
        title=entry.title or None,
        link=link,
        description=entry.summary or entry.content or entry.title or "",
        guid=entry.id or None,
        pub_date=parse_timestamp(entry.updated),
        author=author,
        content_encoded=entry.content,
        categories=[_category(category) for category in entry.categories],
        extensions=_select(entry.extensions, _ITEM_EXTENSION_PREFIXES),
    )


def convert_feed(feed: NormalizedFeed) -> ConvertedFeed:
    link = feed.links[0].href if feed.links else ""
    image = None
    if feed.logo:
        image = FeedImage(url=feed.logo, title=feed.title, link=link)

    return ConvertedFeed(
        title=feed.title,
        description=feed.subtitle or feed.title,
        link=link,
        last_build_date=parse_timestamp(feed.updated),
        copyright=feed.rights,
        generator=feed.generator,
        image=image,
        extensions=_select(feed.extensions, _FEED_EXTENSION_PREFIXES),
        items=[convert_entry(entry) for entry in feed.entries],
    )
