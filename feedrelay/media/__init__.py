"""Media package: yt-dlp backed audio, thumbnail and channel avatar acquisition."""

from feedrelay.media.downloader import MediaDownloader, MediaPaths, extract_video_id
from feedrelay.media.thumbnails import ChannelThumbnailResolver

__all__ = ["MediaDownloader", "MediaPaths", "ChannelThumbnailResolver", "extract_video_id"]
