"""Centralised settings for the feedrelay service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    storage_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("FEEDRELAY_STORAGE", Path.cwd() / "build" / "storage")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite catalog file."""
        return self.storage_dir / "podcasts.db"

    @property
    def media_dir(self) -> Path:
        """Root directory for downloaded audio and thumbnails."""
        return self.storage_dir / "media"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    host: str = field(default_factory=lambda: os.environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "3000")))
    base_url: str = field(
        default_factory=lambda: os.environ.get(
            "BASE_URL", f"http://localhost:{os.environ.get('PORT', '3000')}"
        ).rstrip("/")
    )

    # ------------------------------------------------------------------
    # Outbound requests (feed fetch + filter probes)
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "USER_AGENT", "Mozilla/5.0 (compatible; feedrelay/0.1)"
        )
    )

    # ------------------------------------------------------------------
    # Media acquisition (yt-dlp)
    # ------------------------------------------------------------------
    ytdlp_binary: str = field(
        default_factory=lambda: os.environ.get("YTDLP_BINARY", "yt-dlp")
    )
    audio_timeout: float = field(
        default_factory=lambda: float(os.environ.get("AUDIO_TIMEOUT", "300"))
    )
    thumbnail_timeout: float = field(
        default_factory=lambda: float(os.environ.get("THUMBNAIL_TIMEOUT", "60"))
    )
    download_batch_size: int = field(
        default_factory=lambda: int(os.environ.get("DOWNLOAD_BATCH_SIZE", "5"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "info")
    )
    log_format: str = field(
        default_factory=lambda: os.environ.get("LOG_FORMAT", "console")
    )

    def ensure_storage(self) -> None:
        """Create the storage and media directories if they do not exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.media_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from feedrelay.config import settings
settings = Settings()
