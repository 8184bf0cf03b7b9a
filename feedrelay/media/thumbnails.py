"""Channel-level artwork, cached at ``<media_dir>/<feed_id>/channel/avatar.jpg``."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from feedrelay.config import settings
from feedrelay.errors import MediaToolError
from feedrelay.logging import get_logger
from feedrelay.media.ytdlp import Runner, run_ytdlp, select_variant

logger = get_logger()

CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
AVATAR_PREFERENCE = ("avatar.avatar_uncropped.jpg", "avatar.jpg")


class ChannelThumbnailResolver:
    def __init__(
        self,
        media_dir: Optional[Path] = None,
        runner: Runner = run_ytdlp,
        timeout: Optional[float] = None,
    ) -> None:
        self.media_dir = Path(media_dir or settings.media_dir)
        self.runner = runner
        self.timeout = timeout or settings.thumbnail_timeout

    def avatar_path(self, feed_id: int) -> Path:
        return self.media_dir / str(feed_id) / "channel" / "avatar.jpg"

    async def resolve(self, feed_id: int, channel_id: str) -> Optional[Path]:
        """Return the cached avatar, downloading it first if needed.

        Failures are logged and yield ``None``; they never fail the request.
        """
        avatar = self.avatar_path(feed_id)
        if avatar.exists():
            return avatar

        channel_dir = avatar.parent
        channel_dir.mkdir(parents=True, exist_ok=True)
        try:
            await self.runner(
                [
                    "--write-all-thumbnails",
                    "--skip-download",
                    "--convert-thumbnails", "jpg",
                    "--playlist-items", "0",
                    "-o", str(channel_dir / "avatar"),
                    CHANNEL_URL.format(channel_id=channel_id),
                ],
                self.timeout,
            )
            found = await asyncio.to_thread(
                select_variant, channel_dir, "avatar", AVATAR_PREFERENCE
            )
        except (MediaToolError, OSError) as exc:
            logger.error("channel_avatar_failed", feed_id=feed_id, channel_id=channel_id, error=str(exc))
            return None

        if found is None:
            logger.warning("channel_avatar_missing", feed_id=feed_id, channel_id=channel_id)
        return found
