"""Thin async wrapper around the ``yt-dlp`` command line tool."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from feedrelay.config import settings
from feedrelay.errors import MediaToolError
from feedrelay.logging import get_logger

logger = get_logger()

# (args, timeout) -> None; swapped out in tests.
Runner = Callable[[Sequence[str], float], Awaitable[None]]


async def run_ytdlp(args: Sequence[str], timeout: float) -> None:
    """Run ``yt-dlp *args`` and wait at most *timeout* seconds.

    Raises:
        MediaToolError: If the binary is missing, times out or exits non-zero.
    """
    command = [settings.ytdlp_binary, *args]
    logger.debug("ytdlp_started", args=list(args), timeout=timeout)
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise MediaToolError(f"{settings.ytdlp_binary} is not installed") from exc

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise MediaToolError(f"yt-dlp timed out after {timeout:.0f}s") from exc

    if proc.returncode != 0:
        tail = stderr.decode("utf-8", errors="replace").strip().splitlines()[-3:]
        raise MediaToolError(f"yt-dlp exited with {proc.returncode}: {' | '.join(tail)}")


def select_variant(directory: Path, stem: str, preferred: Sequence[str]) -> Optional[Path]:
    """Keep the best ``<stem>.*`` file as ``<stem>.jpg`` and delete the rest.

    *preferred* lists file names in ``directory`` from best to worst.  The
    first one that exists is copied to the canonical ``<stem>.jpg``.
    """
    canonical = directory / f"{stem}.jpg"
    chosen: Optional[Path] = None
    for name in preferred:
        candidate = directory / name
        if candidate.exists():
            if candidate != canonical:
                shutil.copyfile(candidate, canonical)
            chosen = canonical
            break

    for path in directory.glob(f"{stem}.*"):
        if path != canonical:
            path.unlink(missing_ok=True)
    return chosen
