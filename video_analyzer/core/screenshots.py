"""
Screenshot generation from cached videos with FFmpeg.
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import List

from video_analyzer.core.metadata import thumbnail_url
from video_analyzer.core.video_cache import VideoCache
from video_analyzer.utils.error_handling import ScreenshotError
from video_analyzer.utils.helpers import ensure_dir, random_suffix
from video_analyzer.utils.logger import logging

SCREENSHOT_URL_PREFIX = "/screenshots"


def fallback_thumbnail(video_id: str) -> str:
    """Thumbnail used in place of a frame that could not be extracted."""
    return thumbnail_url(video_id, "maxresdefault")


def _timestamp_label(timestamp: float) -> str:
    return f"{timestamp:g}".replace(".", "_")


class ScreenshotGenerator:
    """Extracts one still frame per timestamp from a cached copy of the video."""

    def __init__(
        self,
        video_cache: VideoCache,
        screenshots_dir: Path,
        ffmpeg_path: str = "ffmpeg",
        width: int = 1280,
        height: int = 720,
        timeout: int = 60,
    ):
        self.video_cache = video_cache
        self.screenshots_dir = Path(screenshots_dir)
        self.ffmpeg_path = ffmpeg_path
        self.width = width
        self.height = height
        self.timeout = timeout
        ensure_dir(str(self.screenshots_dir))

    def ffmpeg_available(self) -> bool:
        """Whether the configured FFmpeg binary can be found."""
        return shutil.which(self.ffmpeg_path) is not None

    def generate(self, video_id: str, timestamps: List[float], title: str = "") -> List[str]:
        """
        Generate one screenshot URL per timestamp.

        Frames that cannot be extracted are replaced by the video thumbnail, and
        if the video cannot be cached at all every position gets the thumbnail.
        The result always has one URL per timestamp, in the same order.

        Args:
            video_id: YouTube video ID
            timestamps: Offsets in seconds
            title: Video title, passed to the cache

        Returns:
            List of screenshot URLs
        """
        logging.info(f"Generating screenshots for {video_id} at {timestamps}")

        try:
            entry = self.video_cache.ensure_downloaded(video_id, title)
            if not os.path.exists(entry.local_path):
                raise ScreenshotError(f"Cached video file missing: {entry.local_path}")
        except Exception as e:
            logging.error(f"Could not obtain local video for {video_id}, using thumbnails: {str(e)}")
            return [fallback_thumbnail(video_id) for _ in timestamps]

        logging.info(f"Using local video file: {entry.file_name}")
        urls = []
        for index, timestamp in enumerate(timestamps, start=1):
            logging.info(f"Processing timestamp {index}/{len(timestamps)}: {timestamp}s")
            try:
                urls.append(self.capture(entry.local_path, video_id, timestamp))
            except ScreenshotError as e:
                logging.error(f"Screenshot at {timestamp}s failed, using thumbnail: {str(e)}")
                urls.append(fallback_thumbnail(video_id))

        logging.info(f"Screenshot generation finished: {len(urls)} URLs")
        return urls

    def capture(self, video_path: str, video_id: str, timestamp: float) -> str:
        """
        Extract a single frame and return its public URL.

        Raises:
            ScreenshotError: If FFmpeg fails or produces no file
        """
        file_name = f"screenshot_{video_id}_{_timestamp_label(timestamp)}s_{random_suffix()}.jpg"
        output_path = self.screenshots_dir / file_name

        cmd = [
            self.ffmpeg_path,
            "-y",
            "-ss", str(max(timestamp, 0)),
            "-i", str(video_path),
            "-frames:v", "1",
            "-vf", f"scale={self.width}:{self.height}",
            "-q:v", "2",
            "-f", "image2",
            str(output_path),
        ]

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8",
                errors="replace", timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ScreenshotError(f"FFmpeg could not run: {str(e)}") from e

        if result.returncode != 0:
            raise ScreenshotError(f"FFmpeg exited with {result.returncode}: {result.stderr[-500:]}")
        if not output_path.exists():
            raise ScreenshotError("FFmpeg produced no screenshot file")

        return f"{SCREENSHOT_URL_PREFIX}/{file_name}"
