"""Bounded media download worker.

A podcast request downloads at most :data:`DOWNLOAD_BATCH_SIZE` episodes, with
at most :data:`MAX_CONCURRENT_DOWNLOADS` yt-dlp runs in flight, and waits for
the whole batch before responding.  Episodes that fail stay without audio and
are picked up again by the next request.
"""

from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from feedrelay.db import catalog
from feedrelay.db.models import ItemRecord
from feedrelay.logging import get_logger
from feedrelay.media.downloader import MediaDownloader

logger = get_logger()

MAX_CONCURRENT_DOWNLOADS = 1
DOWNLOAD_BATCH_SIZE = 5


@dataclass
class DownloadOutcome:
    guid: str
    ok: bool
    error: Optional[str] = None


class MediaDownloadWorker:
    concurrency = MAX_CONCURRENT_DOWNLOADS

    def __init__(
        self,
        conn: sqlite3.Connection,
        downloader: MediaDownloader,
        batch_size: int = DOWNLOAD_BATCH_SIZE,
    ) -> None:
        self.conn = conn
        self.downloader = downloader
        self.batch_size = batch_size

    async def run(self, feed_id: int) -> List[DownloadOutcome]:
        """Download media for up to ``batch_size`` pending items of *feed_id*."""
        pending = catalog.get_items_needing_download(self.conn, feed_id, self.batch_size)
        if not pending:
            return []

        logger.info("media_batch_started", feed_id=feed_id, items=len(pending))
        queue: "asyncio.Queue[ItemRecord]" = asyncio.Queue()
        for item in pending:
            queue.put_nowait(item)

        outcomes: List[DownloadOutcome] = []

        async def _consume() -> None:
            while True:
                try:
                    item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcomes.append(await self._process(feed_id, item))
                queue.task_done()

        await asyncio.gather(*(_consume() for _ in range(self.concurrency)))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info("media_batch_finished", feed_id=feed_id, items=len(outcomes), failed=failed)
        return outcomes

    async def _process(self, feed_id: int, item: ItemRecord) -> DownloadOutcome:
        try:
            result = await self.downloader.download(feed_id, item.link or "")
        except Exception as exc:
            logger.exception("media_item_failed", feed_id=feed_id, guid=item.guid)
            return DownloadOutcome(item.guid, ok=False, error=str(exc))

        if result is None:
            logger.warning("media_item_skipped", feed_id=feed_id, guid=item.guid, link=item.link)
            return DownloadOutcome(item.guid, ok=False, error="no media produced")

        catalog.update_item_media(
            self.conn,
            feed_id,
            item.guid,
            str(result.audio_path),
            str(result.thumbnail_path) if result.thumbnail_path else None,
        )
        return DownloadOutcome(item.guid, ok=True)
