"""Opens the SQLite catalog that backs ``/podcast``.

The API keeps a single connection for its whole lifetime (see the app
lifespan); the CLI opens its own short-lived one per command.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from feedrelay.config import settings

MEMORY = ":memory:"


def get_connection(db_path: Optional[Path | str] = None) -> sqlite3.Connection:
    """Return a catalog connection with rows addressable by column name.

    Foreign keys are enforced so deleting a feed drops its items, and WAL mode
    lets the CLI read the catalog while the server writes to it.  The handle is
    shared across request handlers, hence ``check_same_thread=False``.

    Args:
        db_path: Catalog file, or ``":memory:"`` for tests.  Defaults to
            ``settings.db_path``.
    """
    target = str(db_path or settings.db_path)
    if target != MEMORY:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn
