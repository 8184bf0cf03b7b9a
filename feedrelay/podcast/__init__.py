"""Podcast package: catalog merge and bounded media enrichment."""

from feedrelay.podcast.merger import EpisodeMerger, MergeResult, build_feed, channel_id_from_url
from feedrelay.podcast.worker import DOWNLOAD_BATCH_SIZE, MAX_CONCURRENT_DOWNLOADS, MediaDownloadWorker

__all__ = [
    "EpisodeMerger",
    "MergeResult",
    "MediaDownloadWorker",
    "build_feed",
    "channel_id_from_url",
    "DOWNLOAD_BATCH_SIZE",
    "MAX_CONCURRENT_DOWNLOADS",
]
