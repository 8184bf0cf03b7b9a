"""feedrelay CLI: entry-point for serving and inspecting the relay.

Usage:
    python cli/main.py --help

Command groups:
    serve     → run the HTTP service under uvicorn
    db        → catalog maintenance
    feed      → run the relay pipeline or inspect stored items from a terminal
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from feedrelay.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from typing import List, Optional

import typer

from feedrelay.config import settings
from feedrelay.db import catalog, get_connection, init_db
from feedrelay.errors import FeedError
from feedrelay.feeds import FeedQuery, ProbeCaches, build_client, load_feed, write_atom
from feedrelay.logging import configure_logging

app = typer.Typer(
    name="feedrelay",
    help="feedrelay service CLI.",
    no_args_is_help=True,
)


def _terms(values: Optional[List[str]]) -> list[str]:
    """Flatten repeated and comma-separated option values, case-folded."""
    terms: list[str] = []
    for value in values or []:
        terms.extend(part.casefold() for part in value.split(","))
    return [term for term in terms if term]


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (defaults to HOST)."),
    port: Optional[int] = typer.Option(None, help="Bind port (defaults to PORT)."),
) -> None:
    """Run the HTTP service."""
    import uvicorn

    uvicorn.run(
        "feedrelay.api.app:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Catalog operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite catalog (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Catalog ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------
feed_app = typer.Typer(help="Feed operations.", no_args_is_help=True)
app.add_typer(feed_app, name="feed")


async def _relay(query: FeedQuery) -> bytes:
    async with build_client() as client:
        result = await load_feed(client, ProbeCaches(), query)
    return write_atom(result.feed)


@feed_app.command("rss")
def feed_rss(
    url: str = typer.Argument(..., help="Atom feed URL."),
    include: Optional[List[str]] = typer.Option(None, "--include", help="Keep entries containing every term."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Drop entries containing any term."),
    filter_: Optional[List[str]] = typer.Option(None, "--filter", help="Named filters: shorts, country."),
) -> None:
    """Fetch URL, apply filters and print the resulting Atom document."""
    configure_logging("feedrelay-cli")
    query = FeedQuery(
        url=url,
        includes=_terms(include),
        excludes=_terms(exclude),
        filters=_terms(filter_),
    )
    try:
        document = asyncio.run(_relay(query))
    except FeedError as exc:
        typer.echo(f"[feed rss] {exc.client_message()}", err=True)
        raise typer.Exit(1)
    typer.echo(document.decode("utf-8"))


@feed_app.command("items")
def feed_items(
    url: str = typer.Argument(..., help="Source URL the feed was stored under."),
    limit: Optional[int] = typer.Option(None, help="Show at most this many items."),
) -> None:
    """List catalog items stored for URL, newest first."""
    conn = get_connection()
    init_db(conn)
    try:
        record = catalog.get_feed_by_url(conn, url)
        if record is None:
            typer.echo(f"[feed items] No stored feed for {url!r}.")
            raise typer.Exit(1)
        items = catalog.get_items(conn, record.id, limit=limit)
    finally:
        conn.close()

    typer.echo(f"[feed items] {record.title or '(untitled)'}  ({len(items)} items)")
    for item in items:
        marker = "audio" if item.audio_path else "-----"
        typer.echo(f"  [{marker}]  {item.pub_date or '?':<25}  {item.title or item.guid}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
