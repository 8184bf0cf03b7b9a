"""Merge converted feeds into the catalog and publish them as a podcast.

``EpisodeMerger.merge`` runs, in order:

    persist feed + items → download pending media → re-read the catalog →
    rewrite media paths to URLs → attach the channel avatar

The returned feed is built from the catalog, so it also lists episodes the
source no longer advertises.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from feedrelay.config import settings
from feedrelay.db import catalog
from feedrelay.db.models import FeedRecord, ItemRecord
from feedrelay.feeds.converter import parse_timestamp
from feedrelay.feeds.models import (
    ConvertedFeed,
    ConvertedItem,
    Enclosure,
    FeedImage,
    ItemCategory,
)
from feedrelay.logging import get_logger
from feedrelay.media.downloader import MediaDownloader
from feedrelay.media.thumbnails import ChannelThumbnailResolver
from feedrelay.podcast.worker import DOWNLOAD_BATCH_SIZE, MediaDownloadWorker

logger = get_logger()

_CHANNEL_ID_RE = re.compile(r"channel_id=([^&]+)")


def channel_id_from_url(url: str) -> Optional[str]:
    match = _CHANNEL_ID_RE.search(url)
    return match.group(1) if match else None


def _stored_item(item: ItemRecord) -> ConvertedItem:
    enclosure = None
    if item.audio_path:
        # Length is filled in from the file when the feed is published.
        enclosure = Enclosure(url=item.audio_path, length=0, type="audio/mpeg")
    return ConvertedItem(
        title=item.title,
        link=item.link,
        description=item.description,
        guid=item.guid,
        pub_date=parse_timestamp(item.pub_date),
        author=item.author,
        content_encoded=item.content,
        categories=[ItemCategory(name=c["name"], domain=c.get("domain")) for c in item.categories],
        enclosure=enclosure,
        image=item.thumbnail_path,
        extensions={**item.media_data, **item.itunes_data},
    )


def build_feed(record: FeedRecord, items: list[ItemRecord]) -> ConvertedFeed:
    """Rebuild an RSS feed from catalog rows."""
    image = None
    if record.image_url:
        image = FeedImage(
            url=record.image_url,
            title=record.image_title or record.title,
            link=record.image_link or record.link,
        )
    return ConvertedFeed(
        title=record.title,
        description=record.description,
        link=record.link,
        last_build_date=parse_timestamp(record.last_build_date),
        copyright=record.copyright,
        generator=record.generator,
        image=image,
        extensions=dict(record.itunes_data),
        items=[_stored_item(item) for item in items],
    )


@dataclass
class MergeResult:
    feed: ConvertedFeed
    feed_id: int
    stored_items: int
    source_items: int


class EpisodeMerger:
    def __init__(
        self,
        conn: sqlite3.Connection,
        downloader: MediaDownloader,
        thumbnails: ChannelThumbnailResolver,
        base_url: Optional[str] = None,
        batch_size: int = DOWNLOAD_BATCH_SIZE,
    ) -> None:
        self.conn = conn
        self.downloader = downloader
        self.thumbnails = thumbnails
        self.base_url = base_url or settings.base_url
        self.batch_size = batch_size

    async def merge(self, source_url: str, converted: ConvertedFeed) -> MergeResult:
        record = catalog.get_or_create_feed(self.conn, source_url, converted)
        if converted.items:
            catalog.upsert_items(self.conn, record.id, converted.items)

        worker = MediaDownloadWorker(self.conn, self.downloader, self.batch_size)
        await worker.run(record.id)

        items = catalog.get_items(self.conn, record.id)
        feed = build_feed(record, items)
        for item in feed.items:
            self._publish_media(item)

        channel_id = channel_id_from_url(source_url)
        if channel_id:
            avatar = await self.thumbnails.resolve(record.id, channel_id)
            if avatar is not None:
                self._set_channel_image(feed, avatar)

        return MergeResult(
            feed=feed,
            feed_id=record.id,
            stored_items=len(items),
            source_items=len(converted.items),
        )

    def _publish_media(self, item: ConvertedItem) -> None:
        """Swap internal media paths for servable URLs."""
        if item.enclosure is not None:
            path = Path(item.enclosure.url)
            item.enclosure.length = path.stat().st_size if path.is_file() else 0
            item.enclosure.url = self.downloader.resolve_servable_url(path, self.base_url)
        if item.image:
            if Path(item.image).is_file():
                item.image = self.downloader.resolve_servable_url(item.image, self.base_url)
            else:
                item.image = None

    def _set_channel_image(self, feed: ConvertedFeed, avatar: Path) -> None:
        url = self.downloader.resolve_servable_url(avatar, self.base_url)
        feed.itunes_image = url
        if feed.image is not None:
            feed.image.url = url
        else:
            feed.image = FeedImage(url=url, title=feed.title, link=feed.link)
