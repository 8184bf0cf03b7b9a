"""Tests for the podcast catalog (schema, migrations, feed and item persistence).

All tests use an in-memory SQLite database (see the ``conn`` fixture).
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from feedrelay.db import catalog
from feedrelay.db.migrations import MIGRATIONS, current_version, init_db
from feedrelay.feeds.models import ConvertedFeed, ConvertedItem, FeedImage, ItemCategory

URL = "https://www.youtube.com/feeds/videos.xml?channel_id=UC123"
BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _feed(title: str = "Show") -> ConvertedFeed:
    return ConvertedFeed(
        title=title,
        description="About",
        link="https://example.com/",
        image=FeedImage(url="https://example.com/logo.png", title=title),
        extensions={"itunes_author": "Ann"},
    )


def _item(n: int, **overrides) -> ConvertedItem:
    values = dict(
        title=f"Episode {n}",
        link=f"https://www.youtube.com/watch?v=v{n}",
        description=f"Description {n}",
        guid=f"yt:video:v{n}",
        pub_date=BASE + timedelta(days=n),
        categories=[ItemCategory(name="tech")],
        extensions={"media_thumbnail": [{"url": f"https://img/{n}"}], "itunes_duration": "10:00"},
    )
    values.update(overrides)
    return ConvertedItem(**values)


# ---------------------------------------------------------------------------
# schema
# ---------------------------------------------------------------------------

class TestSchema:
    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"feeds", "items", "schema_version"} <= tables

    def test_init_is_idempotent(self, conn: sqlite3.Connection) -> None:
        init_db(conn)
        init_db(conn)
        assert current_version(conn) == MIGRATIONS[-1][0]

    def test_foreign_keys_enabled(self, conn: sqlite3.Connection) -> None:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


# ---------------------------------------------------------------------------
# feeds
# ---------------------------------------------------------------------------

class TestFeeds:
    def test_create_then_reuse(self, conn: sqlite3.Connection) -> None:
        first = catalog.get_or_create_feed(conn, URL, _feed())
        second = catalog.get_or_create_feed(conn, URL, _feed("Renamed"))

        assert first.id == second.id
        assert second.title == "Renamed"
        assert conn.execute("SELECT COUNT(*) FROM feeds").fetchone()[0] == 1

    def test_snapshot_fields(self, conn: sqlite3.Connection) -> None:
        record = catalog.get_or_create_feed(conn, URL, _feed())

        assert record.url == URL
        assert record.image_url == "https://example.com/logo.png"
        assert record.itunes_data == {"itunes_author": "Ann"}
        assert catalog.get_feed_by_url(conn, URL) == record
        assert catalog.get_feed(conn, record.id) == record

    def test_unknown_feed(self, conn: sqlite3.Connection) -> None:
        assert catalog.get_feed(conn, 999) is None
        assert catalog.get_feed_by_url(conn, "https://nope") is None


# ---------------------------------------------------------------------------
# items
# ---------------------------------------------------------------------------

@pytest.fixture()
def feed_id(conn: sqlite3.Connection) -> int:
    return catalog.get_or_create_feed(conn, URL, _feed()).id


class TestItems:
    def test_upsert_is_idempotent(self, conn, feed_id) -> None:
        items = [_item(1), _item(2)]
        assert catalog.upsert_items(conn, feed_id, items) == 2
        catalog.upsert_items(conn, feed_id, items)

        assert len(catalog.get_items(conn, feed_id)) == 2

    def test_upsert_updates_in_place(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1)])
        catalog.upsert_items(conn, feed_id, [_item(1, title="Edited")])

        stored = catalog.get_item(conn, feed_id, "yt:video:v1")
        assert stored is not None
        assert stored.title == "Edited"

    def test_history_is_retained(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1), _item(2)])
        catalog.upsert_items(conn, feed_id, [_item(3)])

        assert [i.guid for i in catalog.get_items(conn, feed_id)] == [
            "yt:video:v3",
            "yt:video:v2",
            "yt:video:v1",
        ]

    def test_items_newest_first_with_limit(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1), _item(5), _item(3)])
        items = catalog.get_items(conn, feed_id, limit=2)
        assert [i.guid for i in items] == ["yt:video:v5", "yt:video:v3"]

    def test_json_columns_round_trip(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1)])
        stored = catalog.get_item(conn, feed_id, "yt:video:v1")

        assert stored.categories == [{"name": "tech", "domain": None}]
        assert stored.media_data == {"media_thumbnail": [{"url": "https://img/1"}]}
        assert stored.itunes_data == {"itunes_duration": "10:00"}

    def test_guid_falls_back_to_link_then_title(self, conn, feed_id) -> None:
        catalog.upsert_items(
            conn,
            feed_id,
            [
                _item(1, guid=None),
                _item(2, guid=None, link=None),
            ],
        )
        guids = {i.guid for i in catalog.get_items(conn, feed_id)}
        assert guids == {"https://www.youtube.com/watch?v=v1", f"{feed_id}-Episode 2"}

    def test_items_are_scoped_to_their_feed(self, conn, feed_id) -> None:
        other = catalog.get_or_create_feed(conn, "https://other", _feed("Other")).id
        catalog.upsert_items(conn, feed_id, [_item(1)])
        catalog.upsert_items(conn, other, [_item(1)])

        assert len(catalog.get_items(conn, feed_id)) == 1
        assert len(catalog.get_items(conn, other)) == 1


class TestMedia:
    def test_needing_download_respects_limit_and_order(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(n) for n in range(1, 8)])
        pending = catalog.get_items_needing_download(conn, feed_id, limit=5)

        assert [i.guid for i in pending] == [f"yt:video:v{n}" for n in (7, 6, 5, 4, 3)]

    def test_items_without_link_are_not_pending(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1, link=None)])
        assert catalog.get_items_needing_download(conn, feed_id) == []

    def test_update_media_removes_from_pending(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1), _item(2)])
        catalog.update_item_media(conn, feed_id, "yt:video:v2", "/m/a.mp3", "/m/t.jpg")

        pending = catalog.get_items_needing_download(conn, feed_id)
        assert [i.guid for i in pending] == ["yt:video:v1"]

    def test_upsert_never_clears_media(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1)])
        catalog.update_item_media(conn, feed_id, "yt:video:v1", "/m/a.mp3", "/m/t.jpg")
        catalog.upsert_items(conn, feed_id, [_item(1, title="Edited")])

        stored = catalog.get_item(conn, feed_id, "yt:video:v1")
        assert stored.audio_path == "/m/a.mp3"
        assert stored.thumbnail_path == "/m/t.jpg"
        assert stored.title == "Edited"

    def test_update_with_none_keeps_value(self, conn, feed_id) -> None:
        catalog.upsert_items(conn, feed_id, [_item(1)])
        catalog.update_item_media(conn, feed_id, "yt:video:v1", "/m/a.mp3", "/m/t.jpg")
        catalog.update_item_media(conn, feed_id, "yt:video:v1", "/m/b.mp3", None)

        stored = catalog.get_item(conn, feed_id, "yt:video:v1")
        assert stored.audio_path == "/m/b.mp3"
        assert stored.thumbnail_path == "/m/t.jpg"
