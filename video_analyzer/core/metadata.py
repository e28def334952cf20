"""
YouTube URL validation and video metadata lookup.
"""

import re
import datetime
from typing import Optional
from urllib.parse import urlparse

from pytubefix import YouTube

from video_analyzer.models.schemas import VideoMetadata
from video_analyzer.utils.error_handling import ExtractionError, InvalidUrlError
from video_analyzer.utils.logger import logging

YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtu.be",
    "www.youtu.be",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
}

# YouTube URL patterns
VIDEO_ID_PATTERNS = [
    r"(?:watch\?(?:.*&)?v=)([0-9A-Za-z_-]{11})",
    r"(?:embed\/|shorts\/|live\/|\/v\/)([0-9A-Za-z_-]{11})",
    r"(?:youtu\.be\/)([0-9A-Za-z_-]{11})",
]


def extract_video_id(url: str) -> Optional[str]:
    """Extract the video ID from a YouTube URL."""
    for pattern in VIDEO_ID_PATTERNS:
        match = re.search(pattern, url)
        if match:
            return match.group(1)
    return None


def is_valid_youtube_url(url: str) -> bool:
    """Cheap shape check: YouTube host and an extractable 11-character id."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    if (parsed.hostname or "").lower() not in YOUTUBE_HOSTS:
        return False
    return extract_video_id(url) is not None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def thumbnail_url(video_id: str, quality: str = "maxresdefault") -> str:
    """Static YouTube thumbnail for a video id."""
    return f"https://img.youtube.com/vi/{video_id}/{quality}.jpg"


class MetadataResolver:
    """Turns a video URL into canonical id and descriptive metadata."""

    def validate(self, url: str) -> str:
        """
        Validate a URL and return its video id without any network access.

        Raises:
            InvalidUrlError: If the URL is not a YouTube video URL
        """
        if not is_valid_youtube_url(url):
            raise InvalidUrlError(f"Invalid YouTube URL: {url}")
        return extract_video_id(url)

    def resolve(self, url: str) -> VideoMetadata:
        """
        Resolve metadata for a YouTube video.

        Args:
            url: YouTube video URL

        Returns:
            VideoMetadata for the video

        Raises:
            InvalidUrlError: If the URL shape is invalid
            ExtractionError: If the lookup fails (removed, private, network error)
        """
        video_id = self.validate(url)
        logging.info(f"Fetching video metadata for {video_id}")

        try:
            yt = YouTube(watch_url(video_id))
            publish_date = yt.publish_date
            metadata = VideoMetadata(
                video_id=yt.video_id or video_id,
                title=yt.title,
                channel=yt.author,
                duration=int(yt.length or 0),
                publish_date=(
                    publish_date.isoformat()
                    if publish_date
                    else datetime.datetime.now(datetime.timezone.utc).isoformat()
                ),
                thumbnail_url=yt.thumbnail_url or thumbnail_url(video_id),
            )
        except Exception as e:
            logging.error(f"Error extracting video metadata for {video_id}: {str(e)}")
            raise ExtractionError(f"Failed to extract video metadata: {str(e)}") from e

        logging.info(f"Video title: {metadata.title}")
        return metadata
