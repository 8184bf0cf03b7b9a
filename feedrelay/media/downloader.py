"""Per-episode media acquisition.

Layout produced under ``media_dir``::

    <feed_id>/<video_id>/audio.mp3
    <feed_id>/<video_id>/thumbnail.jpg
"""

from __future__ import annotations

import asyncio
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from feedrelay.config import settings
from feedrelay.errors import MediaToolError
from feedrelay.logging import get_logger
from feedrelay.media.ytdlp import Runner, run_ytdlp, select_variant

logger = get_logger()

_VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/embed/([^&\n?#]+)"),
    re.compile(r"youtube\.com/v/([^&\n?#]+)"),
]

THUMBNAIL_PREFERENCE = (
    "thumbnail.maxresdefault.jpg",
    "thumbnail.hqdefault.jpg",
    "thumbnail.sddefault.jpg",
    "thumbnail.jpg",
)


@dataclass(frozen=True)
class MediaPaths:
    audio_path: Path
    thumbnail_path: Optional[Path]


def extract_video_id(url: str) -> Optional[str]:
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


class MediaDownloader:
    """Downloads episode audio and thumbnails with yt-dlp.

    Args:
        media_dir: Root of the media tree (served under ``/media``).
        runner: Coroutine running yt-dlp; defaults to :func:`run_ytdlp`.
    """

    def __init__(
        self,
        media_dir: Optional[Path] = None,
        runner: Runner = run_ytdlp,
        audio_timeout: Optional[float] = None,
        thumbnail_timeout: Optional[float] = None,
    ) -> None:
        self.media_dir = Path(media_dir or settings.media_dir)
        self.runner = runner
        self.audio_timeout = audio_timeout or settings.audio_timeout
        self.thumbnail_timeout = thumbnail_timeout or settings.thumbnail_timeout
        self.media_dir.mkdir(parents=True, exist_ok=True)

    async def download(self, feed_id: int, url: str) -> Optional[MediaPaths]:
        """Fetch audio (mp3) and the best thumbnail for the video at *url*.

        Returns ``None`` when the URL has no video id or acquisition fails;
        a failed attempt leaves no partial files behind.
        """
        video_id = extract_video_id(url)
        if not video_id:
            logger.warning("media_video_id_missing", url=url)
            return None

        output_dir = self.media_dir / str(feed_id) / video_id
        audio_path = output_dir / "audio.mp3"
        thumbnail_path = output_dir / "thumbnail.jpg"

        if audio_path.exists() and thumbnail_path.exists():
            logger.debug("media_already_present", video_id=video_id)
            return MediaPaths(audio_path, thumbnail_path)

        output_dir.mkdir(parents=True, exist_ok=True)
        try:
            await self.runner(
                [
                    "-x",
                    "--audio-format", "mp3",
                    "--audio-quality", "0",
                    "-o", str(output_dir / "audio.%(ext)s"),
                    url,
                ],
                self.audio_timeout,
            )
            await self.runner(
                [
                    "--write-all-thumbnails",
                    "--skip-download",
                    "--convert-thumbnails", "jpg",
                    "-o", str(output_dir / "thumbnail"),
                    url,
                ],
                self.thumbnail_timeout,
            )
            if not audio_path.exists():
                raise MediaToolError(f"audio file not found after download: {audio_path}")
            thumbnail = await asyncio.to_thread(
                select_variant, output_dir, "thumbnail", THUMBNAIL_PREFERENCE
            )
        except (MediaToolError, OSError) as exc:
            logger.error("media_download_failed", video_id=video_id, url=url, error=str(exc))
            shutil.rmtree(output_dir, ignore_errors=True)
            return None

        logger.info("media_downloaded", video_id=video_id, feed_id=feed_id)
        return MediaPaths(audio_path, thumbnail)

    def resolve_servable_url(self, path: Union[str, Path], base_url: str) -> str:
        """Map a file under ``media_dir`` to its public ``/media/...`` URL."""
        relative = os.path.relpath(str(path), str(self.media_dir))
        return f"{base_url.rstrip('/')}/media/{quote(relative.replace(os.sep, '/'))}"
