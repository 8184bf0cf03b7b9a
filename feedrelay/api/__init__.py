"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from feedrelay.api import app

    uvicorn feedrelay.api:app
"""

from feedrelay.api.app import app

__all__ = ["app"]
