"""Serialize feeds to Atom and RSS 2.0 XML.

Namespace extension blocks are written back from their feedparser-style
``<prefix>_<name>`` keys:

* a string (or number) becomes element text;
* a mapping becomes an element whose scalar values are attributes;
* a list repeats the element once per value.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET  # nosec B405
from datetime import datetime
from email.utils import format_datetime
from typing import Any, Dict, Optional

from feedrelay.feeds.converter import parse_timestamp
from feedrelay.feeds.models import (
    Category,
    ConvertedFeed,
    ConvertedItem,
    Link,
    NormalizedEntry,
    NormalizedFeed,
    Person,
)

ATOM_NS = "http://www.w3.org/2005/Atom"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"

EXTENSION_NAMESPACES: Dict[str, str] = {
    "media": "http://search.yahoo.com/mrss/",
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "itunes": ITUNES_NS,
    "georss": "http://www.georss.org/georss",
    "slash": "http://purl.org/rss/1.0/modules/slash/",
    "thr": "http://purl.org/syndication/thread/1.0",
    "wfw": "http://wellformedweb.org/CommentAPI/",
    "psc": "http://podlove.org/simple-chapters",
}

# feedparser lower-cases element names; restore the ones readers care about.
_LOCAL_NAMES = {
    "videoid": "videoId",
    "channelid": "channelId",
    "starrating": "starRating",
    "commentrss": "commentRss",
}

_XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")

ET.register_namespace("content", CONTENT_NS)
for _prefix, _uri in EXTENSION_NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)


def _atom(tag: str) -> str:
    # Atom elements stay unqualified; the root declares Atom as the default
    # namespace so unprefixed attributes (href, term, type) serialize cleanly.
    return tag


def _text(parent: ET.Element, tag: str, value: Optional[Any]) -> Optional[ET.Element]:
    if value is None or value == "":
        return None
    element = ET.SubElement(parent, tag)
    element.text = str(value)
    return element


def _scalar(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _write_extension(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        for item in value:
            _write_extension(parent, tag, item)
        return
    if isinstance(value, dict):
        element = ET.SubElement(parent, tag)
        for key, attr in value.items():
            text = _scalar(attr)
            if text is None or not _XML_NAME.match(key):
                continue
            if key in ("value", "content"):
                element.text = text
            else:
                element.set(key, text)
        return
    text = _scalar(value)
    if text is not None:
        element = ET.SubElement(parent, tag)
        element.text = text


def write_extensions(parent: ET.Element, extensions: Dict[str, Any]) -> None:
    for key, value in extensions.items():
        prefix, _, local = key.partition("_")
        uri = EXTENSION_NAMESPACES.get(prefix)
        if uri is None or not _XML_NAME.match(local):
            continue
        _write_extension(parent, f"{{{uri}}}{_LOCAL_NAMES.get(local, local)}", value)


def _serialize(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


# ---------------------------------------------------------------------------
# Atom
# ---------------------------------------------------------------------------

def _atom_date(parent: ET.Element, tag: str, value: Optional[str]) -> None:
    parsed = parse_timestamp(value)
    if parsed is not None:
        _text(parent, _atom(tag), parsed.isoformat())


def _atom_links(parent: ET.Element, links: list[Link]) -> None:
    for link in links:
        element = ET.SubElement(parent, _atom("link"), href=link.href)
        if link.rel:
            element.set("rel", link.rel)
        if link.type:
            element.set("type", link.type)


def _atom_people(parent: ET.Element, people: list[Person]) -> None:
    for person in people:
        element = ET.SubElement(parent, _atom("author"))
        _text(element, _atom("name"), person.name or person.email)
        _text(element, _atom("email"), person.email)
        _text(element, _atom("uri"), person.uri)


def _atom_categories(parent: ET.Element, categories: list[Category]) -> None:
    for category in categories:
        element = ET.SubElement(parent, _atom("category"), term=category.term)
        if category.scheme:
            element.set("scheme", category.scheme)
        if category.label:
            element.set("label", category.label)


def _atom_entry(parent: ET.Element, entry: NormalizedEntry) -> None:
    element = ET.SubElement(parent, _atom("entry"))
    _text(element, _atom("id"), entry.id)
    title = ET.SubElement(element, _atom("title"))
    title.text = entry.title
    _atom_links(element, entry.links)
    _atom_people(element, entry.authors)
    _atom_date(element, "published", entry.published)
    _atom_date(element, "updated", entry.updated)
    _atom_categories(element, entry.categories)
    _text(element, _atom("rights"), entry.rights)
    _text(element, _atom("summary"), entry.summary)
    content = _text(element, _atom("content"), entry.content)
    if content is not None:
        content.set("type", "html")
    write_extensions(element, entry.extensions)


def write_atom(feed: NormalizedFeed) -> bytes:
    """Render *feed* as an Atom 1.0 document."""
    root = ET.Element(_atom("feed"), xmlns=ATOM_NS)
    _text(root, _atom("id"), feed.id)
    title = ET.SubElement(root, _atom("title"))
    title.text = feed.title
    _text(root, _atom("subtitle"), feed.subtitle)
    _atom_date(root, "updated", feed.updated)
    _atom_links(root, feed.links)
    _atom_people(root, feed.authors)
    _atom_categories(root, feed.categories)
    _text(root, _atom("generator"), feed.generator)
    _text(root, _atom("icon"), feed.icon)
    _text(root, _atom("logo"), feed.logo)
    _text(root, _atom("rights"), feed.rights)
    write_extensions(root, feed.extensions)
    for entry in feed.entries:
        _atom_entry(root, entry)
    return _serialize(root)


# ---------------------------------------------------------------------------
# RSS 2.0
# ---------------------------------------------------------------------------

def _rss_date(value: Optional[datetime]) -> Optional[str]:
    return format_datetime(value) if value is not None else None


def _rss_item(channel: ET.Element, item: ConvertedItem, include_links: bool) -> None:
    element = ET.SubElement(channel, "item")
    _text(element, "title", item.title)
    if include_links:
        _text(element, "link", item.link)
    description = ET.SubElement(element, "description")
    description.text = item.description
    guid = _text(element, "guid", item.guid)
    if guid is not None:
        guid.set("isPermaLink", "false")
    _text(element, "pubDate", _rss_date(item.pub_date))
    _text(element, "author", item.author)
    for category in item.categories:
        cat = _text(element, "category", category.name)
        if cat is not None and category.domain:
            cat.set("domain", category.domain)
    _text(element, f"{{{CONTENT_NS}}}encoded", item.content_encoded)
    if item.enclosure is not None:
        ET.SubElement(
            element,
            "enclosure",
            url=item.enclosure.url,
            length=str(item.enclosure.length),
            type=item.enclosure.type,
        )
    extensions = dict(item.extensions)
    if item.image:
        extensions.pop("itunes_image", None)
        ET.SubElement(element, f"{{{ITUNES_NS}}}image", href=item.image)
    write_extensions(element, extensions)


def write_rss(feed: ConvertedFeed, include_links: bool = True) -> bytes:
    """Render *feed* as an RSS 2.0 document.

    ``include_links=False`` drops item ``<link>`` elements; the converted
    link is only needed for catalog keying.
    """
    root = ET.Element("rss", version="2.0")
    channel = ET.SubElement(root, "channel")
    title = ET.SubElement(channel, "title")
    title.text = feed.title
    link = ET.SubElement(channel, "link")
    link.text = feed.link
    description = ET.SubElement(channel, "description")
    description.text = feed.description
    _text(channel, "lastBuildDate", _rss_date(feed.last_build_date))
    _text(channel, "copyright", feed.copyright)
    _text(channel, "generator", feed.generator)
    if feed.image is not None:
        image = ET.SubElement(channel, "image")
        _text(image, "url", feed.image.url)
        _text(image, "title", feed.image.title or feed.title)
        _text(image, "link", feed.image.link or feed.link)
    extensions = dict(feed.extensions)
    if feed.itunes_image:
        extensions.pop("itunes_image", None)
        ET.SubElement(channel, f"{{{ITUNES_NS}}}image", href=feed.itunes_image)
    write_extensions(channel, extensions)
    for item in feed.items:
        _rss_item(channel, item, include_links)
    return _serialize(root)
