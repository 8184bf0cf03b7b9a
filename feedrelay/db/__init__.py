"""Database layer package.

Public re-exports so callers can write::

    from feedrelay.db import get_connection, init_db
    from feedrelay.db import catalog
"""

from feedrelay.db.connection import get_connection
from feedrelay.db.migrations import init_db
from feedrelay.db import catalog

__all__ = ["get_connection", "init_db", "catalog"]
