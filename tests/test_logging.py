"""Tests for the structlog setup."""

from __future__ import annotations

import json
import sqlite3

import pytest
import structlog

from feedrelay.db import catalog
from feedrelay.feeds.models import ConvertedFeed, ConvertedItem
from feedrelay.logging import configure_logging, get_logger
from feedrelay.podcast.worker import MediaDownloadWorker

from conftest import CHANNEL_URL


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def _fail_and_log() -> None:
    try:
        raise RuntimeError("disk full")
    except RuntimeError:
        get_logger().exception("download_crashed", guid="g1")


def test_console_exception_includes_traceback(capsys) -> None:
    configure_logging("feedrelay-test", fmt="console")

    _fail_and_log()

    err = capsys.readouterr().err
    assert "download_crashed" in err
    assert "RuntimeError: disk full" in err


def test_json_exception_is_structured(capsys) -> None:
    configure_logging("feedrelay-test", fmt="json")

    _fail_and_log()

    event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert event["event"] == "download_crashed"
    assert event["service"] == "feedrelay-test"
    assert event["exception"][0]["exc_type"] == "RuntimeError"


@pytest.mark.parametrize("fmt", ["console", "json"])
async def test_worker_survives_crashing_downloader(conn: sqlite3.Connection, fmt: str) -> None:
    configure_logging("feedrelay-test", fmt=fmt)

    class Exploding:
        async def download(self, feed_id, url):
            raise RuntimeError("disk full")

    feed_id = catalog.get_or_create_feed(conn, CHANNEL_URL, ConvertedFeed(title="T", description="T")).id
    catalog.upsert_items(
        conn, feed_id, [ConvertedItem(title="E", guid="g1", link="https://www.youtube.com/watch?v=g1")]
    )

    outcomes = await MediaDownloadWorker(conn, Exploding()).run(feed_id)  # type: ignore[arg-type]

    assert [(o.guid, o.ok) for o in outcomes] == [("g1", False)]
