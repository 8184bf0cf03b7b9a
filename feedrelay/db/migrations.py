"""Catalog schema setup.

``init_db(conn)`` applies ``schema.sql`` and then any numbered migrations that
this catalog has not seen yet.  Running it against an up-to-date catalog does
nothing, so both the server lifespan and ``feedrelay db init`` call it freely.
"""

from __future__ import annotations

import sqlite3

from feedrelay.config import settings
from feedrelay.logging import get_logger

logger = get_logger()

# Append new steps here; a step's number must never be reused.
MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        "CREATE INDEX IF NOT EXISTS idx_items_pending_media "
        "ON items(feed_id, audio_path)",
    ),
]

_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at INTEGER DEFAULT (strftime('%s', 'now'))
)
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create the feed and item tables, then bring the catalog up to date."""
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
    with conn:
        conn.execute(_VERSION_TABLE)
    migrate(conn)


def current_version(conn: sqlite3.Connection) -> int:
    """Number of the last migration recorded in this catalog, 0 for a fresh one."""
    (version,) = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_version"
    ).fetchone()
    return version


def migrate(conn: sqlite3.Connection) -> None:
    """Apply each pending step of :data:`MIGRATIONS` in its own transaction."""
    applied = current_version(conn)
    pending = [(v, sql) for v, sql in MIGRATIONS if v > applied]
    for version, sql in sorted(pending):
        with conn:
            conn.execute(sql)
            conn.execute("INSERT INTO schema_version(version) VALUES (?)", (version,))
        logger.info("schema_migrated", version=version)
