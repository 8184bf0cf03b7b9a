"""Dataclass models representing catalog rows.

These are plain Python objects – not ORM models.  The catalog module
serialises / deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class FeedRecord:
    id: int
    url: str
    title: str
    description: str
    link: str
    last_build_date: Optional[str]
    copyright: Optional[str]
    generator: Optional[str]
    image_url: Optional[str]
    image_title: Optional[str]
    image_link: Optional[str]
    itunes_data: dict[str, Any]
    created_at: int
    updated_at: int


@dataclass
class ItemRecord:
    id: int
    feed_id: int
    guid: str
    title: Optional[str]
    link: Optional[str]
    description: str
    pub_date: Optional[str]
    author: Optional[str]
    content: Optional[str]
    categories: list[dict[str, Any]] = field(default_factory=list)
    media_data: dict[str, Any] = field(default_factory=dict)
    itunes_data: dict[str, Any] = field(default_factory=dict)
    audio_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0
