"""Shared fixtures: sample feeds, an in-memory catalog and fake yt-dlp runners."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Generator, List, Sequence

import pytest

from feedrelay.db.connection import get_connection
from feedrelay.db.migrations import init_db

CHANNEL_URL = "https://www.youtube.com/feeds/videos.xml?channel_id=UC123"

YOUTUBE_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015"
      xmlns:media="http://search.yahoo.com/mrss/"
      xmlns="http://www.w3.org/2005/Atom">
  <link rel="self" href="https://www.youtube.com/feeds/videos.xml?channel_id=UC123"/>
  <id>yt:channel:UC123</id>
  <yt:channelId>UC123</yt:channelId>
  <title>Test Channel</title>
  <link rel="alternate" href="https://www.youtube.com/channel/UC123"/>
  <author>
    <name>Test Channel</name>
    <uri>https://www.youtube.com/channel/UC123</uri>
  </author>
  <published>2020-01-01T00:00:00+00:00</published>
  <entry>
    <id>yt:video:vid1</id>
    <yt:videoId>vid1</yt:videoId>
    <yt:channelId>UC123</yt:channelId>
    <title>Learning Python the long way</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=vid1"/>
    <author>
      <name>Test Channel</name>
      <uri>https://www.youtube.com/channel/UC123</uri>
    </author>
    <published>2024-01-02T10:00:00+00:00</published>
    <updated>2024-01-03T10:00:00+00:00</updated>
    <media:group>
      <media:title>Learning Python the long way</media:title>
      <media:thumbnail url="https://i1.ytimg.com/vi/vid1/hqdefault.jpg" width="480" height="360"/>
      <media:description>Generators, decorators and a sponsor segment.</media:description>
    </media:group>
  </entry>
  <entry>
    <id>yt:video:vid2</id>
    <yt:videoId>vid2</yt:videoId>
    <yt:channelId>UC123</yt:channelId>
    <title>Quick tip in sixty seconds</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=vid2"/>
    <author>
      <name>Test Channel</name>
    </author>
    <published>2024-01-01T10:00:00+00:00</published>
    <updated>2024-01-01T10:00:00+00:00</updated>
    <media:group>
      <media:title>Quick tip in sixty seconds</media:title>
      <media:description>A short one.</media:description>
    </media:group>
  </entry>
</feed>
"""

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Plain RSS</title>
    <link>https://example.com/</link>
    <description>Not Atom</description>
    <item><title>One</title><link>https://example.com/1</link></item>
  </channel>
</rss>
"""

HTML_PAGE = b"<!DOCTYPE html><html><head><title>Nope</title></head><body><p>hello</p></body></html>"


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory catalog with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


class FakeYtdlp:
    """Stands in for ``run_ytdlp``: records calls and writes the files yt-dlp would."""

    def __init__(self, fail_on: Sequence[str] = ()) -> None:
        self.calls: List[List[str]] = []
        self.fail_on = list(fail_on)

    async def __call__(self, args: Sequence[str], timeout: float) -> None:
        from feedrelay.errors import MediaToolError

        args = list(args)
        self.calls.append(args)
        url = args[-1]
        if any(marker in url for marker in self.fail_on):
            raise MediaToolError(f"simulated failure for {url}")

        template = Path(args[args.index("-o") + 1])
        if "-x" in args:
            target = template.parent / "audio.mp3"
            target.write_bytes(b"ID3" + b"\x00" * 29)
        elif "--playlist-items" in args:
            (template.parent / "avatar.avatar_uncropped.jpg").write_bytes(b"\xff\xd8avatar")
            (template.parent / "avatar.banner_uncropped.jpg").write_bytes(b"\xff\xd8banner")
        else:
            (template.parent / "thumbnail.hqdefault.jpg").write_bytes(b"\xff\xd8hq")
            (template.parent / "thumbnail.maxresdefault.jpg").write_bytes(b"\xff\xd8max")


@pytest.fixture()
def fake_ytdlp() -> FakeYtdlp:
    return FakeYtdlp()
