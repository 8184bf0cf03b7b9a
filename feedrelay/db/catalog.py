"""Podcast catalog: persisted feeds and their items.

Items are keyed by ``(feed_id, guid)``.  Re-converting the same source entry
updates its row in place.  ``audio_path`` and ``thumbnail_path`` only ever
move from NULL to a value (or to a new value): neither an upsert nor a media
update can clear them.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from time import time
from typing import Any, Iterable, Optional

from feedrelay.db.models import FeedRecord, ItemRecord
from feedrelay.feeds.models import ConvertedFeed, ConvertedItem
from feedrelay.logging import get_logger

logger = get_logger()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> Optional[str]:
    # Stored in UTC so that text ordering matches time ordering.
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _json(value: Any) -> Optional[str]:
    return json.dumps(value) if value else None


def _loads(value: Optional[str], default: Any) -> Any:
    return json.loads(value) if value else default


def _row_to_feed(row: sqlite3.Row) -> FeedRecord:
    return FeedRecord(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        description=row["description"],
        link=row["link"],
        last_build_date=row["last_build_date"],
        copyright=row["copyright"],
        generator=row["generator"],
        image_url=row["image_url"],
        image_title=row["image_title"],
        image_link=row["image_link"],
        itunes_data=_loads(row["itunes_data"], {}),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_item(row: sqlite3.Row) -> ItemRecord:
    return ItemRecord(
        id=row["id"],
        feed_id=row["feed_id"],
        guid=row["guid"],
        title=row["title"],
        link=row["link"],
        description=row["description"],
        pub_date=row["pub_date"],
        author=row["author"],
        content=row["content"],
        categories=_loads(row["categories"], []),
        media_data=_loads(row["media_data"], {}),
        itunes_data=_loads(row["itunes_data"], {}),
        audio_path=row["audio_path"],
        thumbnail_path=row["thumbnail_path"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _feed_values(feed: ConvertedFeed) -> tuple:
    image = feed.image
    return (
        feed.title,
        feed.description,
        feed.link or "",
        _iso(feed.last_build_date),
        feed.copyright,
        feed.generator,
        image.url if image else None,
        image.title if image else None,
        image.link if image else None,
        _json(feed.extensions),
    )


def item_guid(feed_id: int, item: ConvertedItem) -> str:
    """Deduplication key: entry id, else link, else ``<feed_id>-<title>``."""
    return item.guid or item.link or f"{feed_id}-{item.title}"


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------

def get_feed(conn: sqlite3.Connection, feed_id: int) -> Optional[FeedRecord]:
    """Fetch a feed by id.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,)).fetchone()
    return _row_to_feed(row) if row else None


def get_feed_by_url(conn: sqlite3.Connection, url: str) -> Optional[FeedRecord]:
    """Fetch a feed by its source URL.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
    return _row_to_feed(row) if row else None


def get_or_create_feed(conn: sqlite3.Connection, url: str, feed: ConvertedFeed) -> FeedRecord:
    """Insert the feed for *url*, or refresh the metadata snapshot of an existing one."""
    now = int(time())
    existing = get_feed_by_url(conn, url)

    with conn:
        if existing is not None:
            conn.execute(
                """
                UPDATE feeds SET
                    title = ?, description = ?, link = ?, last_build_date = ?,
                    copyright = ?, generator = ?, image_url = ?, image_title = ?,
                    image_link = ?, itunes_data = ?, updated_at = ?
                WHERE id = ?
                """,
                (*_feed_values(feed), now, existing.id),
            )
            feed_id = existing.id
        else:
            cursor = conn.execute(
                """
                INSERT INTO feeds (
                    url, title, description, link, last_build_date, copyright,
                    generator, image_url, image_title, image_link, itunes_data,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (url, *_feed_values(feed), now, now),
            )
            feed_id = cursor.lastrowid
            logger.info("catalog_feed_created", url=url, feed_id=feed_id)

    return get_feed(conn, feed_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def upsert_items(conn: sqlite3.Connection, feed_id: int, items: Iterable[ConvertedItem]) -> int:
    """Insert or update *items* for *feed_id* in one transaction.

    Media paths are always written as NULL here; ``COALESCE`` keeps whatever
    an earlier download stored.

    Returns:
        Number of items written.
    """
    now = int(time())
    rows = []
    for item in items:
        rows.append(
            (
                feed_id,
                item_guid(feed_id, item),
                item.title,
                item.link,
                item.description,
                _iso(item.pub_date),
                item.author,
                item.content_encoded,
                _json([{"name": c.name, "domain": c.domain} for c in item.categories]),
                _json({k: v for k, v in item.extensions.items() if k.startswith("media_")}),
                _json({k: v for k, v in item.extensions.items() if k.startswith("itunes_")}),
                None,
                None,
                now,
                now,
            )
        )

    with conn:
        conn.executemany(
            """
            INSERT INTO items (
                feed_id, guid, title, link, description, pub_date, author,
                content, categories, media_data, itunes_data, audio_path,
                thumbnail_path, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(feed_id, guid) DO UPDATE SET
                title          = excluded.title,
                link           = excluded.link,
                description    = excluded.description,
                pub_date       = excluded.pub_date,
                author         = excluded.author,
                content        = excluded.content,
                categories     = excluded.categories,
                media_data     = excluded.media_data,
                itunes_data    = excluded.itunes_data,
                audio_path     = COALESCE(excluded.audio_path, items.audio_path),
                thumbnail_path = COALESCE(excluded.thumbnail_path, items.thumbnail_path),
                updated_at     = excluded.updated_at
            """,
            rows,
        )
    return len(rows)


def get_items(conn: sqlite3.Connection, feed_id: int, limit: Optional[int] = None) -> list[ItemRecord]:
    """Return items for *feed_id*, newest first (publish date desc, id desc)."""
    query = "SELECT * FROM items WHERE feed_id = ? ORDER BY pub_date DESC, id DESC"
    params: tuple = (feed_id,)
    if limit:
        query += " LIMIT ?"
        params = (feed_id, limit)
    return [_row_to_item(r) for r in conn.execute(query, params).fetchall()]


def get_item(conn: sqlite3.Connection, feed_id: int, guid: str) -> Optional[ItemRecord]:
    row = conn.execute(
        "SELECT * FROM items WHERE feed_id = ? AND guid = ?", (feed_id, guid)
    ).fetchone()
    return _row_to_item(row) if row else None


def get_items_needing_download(
    conn: sqlite3.Connection, feed_id: int, limit: int = 10
) -> list[ItemRecord]:
    """Items with a link but no audio yet, in listing order, at most *limit*."""
    rows = conn.execute(
        """
        SELECT * FROM items
        WHERE feed_id = ? AND audio_path IS NULL AND link IS NOT NULL
        ORDER BY pub_date DESC, id DESC
        LIMIT ?
        """,
        (feed_id, limit),
    ).fetchall()
    logger.debug("catalog_pending_media", feed_id=feed_id, limit=limit, found=len(rows))
    return [_row_to_item(r) for r in rows]


def update_item_media(
    conn: sqlite3.Connection,
    feed_id: int,
    guid: str,
    audio_path: Optional[str],
    thumbnail_path: Optional[str],
) -> None:
    """Record downloaded media paths; a ``None`` argument leaves the column as is."""
    with conn:
        conn.execute(
            """
            UPDATE items SET
                audio_path     = COALESCE(?, audio_path),
                thumbnail_path = COALESCE(?, thumbnail_path),
                updated_at     = ?
            WHERE feed_id = ? AND guid = ?
            """,
            (audio_path, thumbnail_path, int(time()), feed_id, guid),
        )
