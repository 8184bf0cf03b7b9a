"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection and a single
``httpx.AsyncClient`` (shared across all requests via ``request.app.state``),
initialises the schema, and creates the probe caches and media helpers.  On
shutdown it closes the client and the connection cleanly.

Routes
------
    /          liveness text
    /rss       filtered Atom relay
    /podcast   RSS podcast with downloaded audio
    /media     static files produced by the media downloader
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedrelay import __version__
from feedrelay.api.middleware import RequestLogMiddleware
from feedrelay.api.routers import feeds as feeds_router
from feedrelay.config import settings
from feedrelay.db import get_connection, init_db
from feedrelay.feeds.fetcher import build_client
from feedrelay.feeds.probes import ProbeCaches
from feedrelay.logging import configure_logging, get_logger
from feedrelay.media.downloader import MediaDownloader
from feedrelay.media.thumbnails import ChannelThumbnailResolver

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open shared resources on startup and release them on shutdown."""
    settings.ensure_storage()
    conn = get_connection()
    init_db(conn)
    client = build_client()

    app.state.db = conn
    app.state.http = client
    app.state.probes = ProbeCaches()
    app.state.downloader = MediaDownloader(settings.media_dir)
    app.state.thumbnails = ChannelThumbnailResolver(settings.media_dir)
    logger.info(
        "service_started",
        db_path=str(settings.db_path),
        media_dir=str(settings.media_dir),
        base_url=settings.base_url,
    )
    try:
        yield
    finally:
        await client.aclose()
        conn.close()
        logger.info("service_stopped")


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging("feedrelay-api")

    app = FastAPI(
        title="feedrelay",
        description=(
            "Relays Atom feeds with text and network-backed entry filters, "
            "and republishes video channels as audio podcasts."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    # Feed readers and browser players fetch from any origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return "Root"

    app.include_router(feeds_router.router, tags=["feeds"])
    app.mount(
        "/media",
        StaticFiles(directory=settings.media_dir, check_dir=False),
        name="media",
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn feedrelay.api.app:app
app = create_app()
