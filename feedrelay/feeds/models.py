"""Data models for the feed pipeline.

Two families live here:

* the normalized Atom side (:class:`NormalizedFeed`, :class:`NormalizedEntry`)
  produced by the parser and consumed by filters and the Atom writer;
* the RSS side (:class:`ConvertedFeed`, :class:`ConvertedItem`) produced by the
  converter and the podcast merger and consumed by the RSS writer.

``extensions`` hold namespace blocks (``media_*``, ``yt_*``, ``itunes_*`` …)
exactly as feedparser exposes them; they are passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

# Response headers copied from the source feed onto our response.
PASSTHROUGH_HEADERS = frozenset({"cache-control", "date", "expires", "age"})


@dataclass(frozen=True)
class RawResponse:
    """Body and whitelisted headers of a fetched feed."""

    url: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Atom side
# ---------------------------------------------------------------------------

@dataclass
class Link:
    href: str
    rel: Optional[str] = None
    type: Optional[str] = None


@dataclass
class Person:
    name: Optional[str] = None
    email: Optional[str] = None
    uri: Optional[str] = None


@dataclass
class Category:
    term: str
    scheme: Optional[str] = None
    label: Optional[str] = None


@dataclass
class NormalizedEntry:
    id: str
    title: str = ""
    links: List[Link] = field(default_factory=list)
    summary: Optional[str] = None
    content: Optional[str] = None
    authors: List[Person] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    updated: Optional[str] = None
    published: Optional[str] = None
    rights: Optional[str] = None
    extensions: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizedFeed:
    id: str
    title: str = ""
    subtitle: Optional[str] = None
    updated: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    logo: Optional[str] = None
    icon: Optional[str] = None
    rights: Optional[str] = None
    generator: Optional[str] = None
    authors: List[Person] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    extensions: Dict[str, Any] = field(default_factory=dict)
    entries: List[NormalizedEntry] = field(default_factory=list)


# ---------------------------------------------------------------------------
# RSS side
# ---------------------------------------------------------------------------

@dataclass
class ItemCategory:
    name: str
    domain: Optional[str] = None


@dataclass
class Enclosure:
    url: str
    length: int = 0
    type: str = "audio/mpeg"


@dataclass
class FeedImage:
    url: str
    title: str = ""
    link: str = ""


@dataclass
class ConvertedItem:
    """One RSS ``<item>``.

    ``description`` is always set (possibly empty) so an item never lacks both
    title and description.  ``link`` is kept even where the writer is told to
    omit it, because the catalog keys items on it when there is no guid.
    """

    description: str = ""
    title: Optional[str] = None
    link: Optional[str] = None
    guid: Optional[str] = None
    pub_date: Optional[datetime] = None
    author: Optional[str] = None
    content_encoded: Optional[str] = None
    categories: List[ItemCategory] = field(default_factory=list)
    enclosure: Optional[Enclosure] = None
    image: Optional[str] = None
    extensions: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConvertedFeed:
    title: str
    description: str
    link: str = ""
    last_build_date: Optional[datetime] = None
    copyright: Optional[str] = None
    generator: Optional[str] = None
    image: Optional[FeedImage] = None
    itunes_image: Optional[str] = None
    extensions: Dict[str, Any] = field(default_factory=dict)
    items: List[ConvertedItem] = field(default_factory=list)
