"""
Local cache of downloaded YouTube videos.

Each video id moves through ``downloading -> completed`` or
``downloading -> failed``; a failed entry is overwritten by the next attempt.
The id -> entry index is persisted as JSON next to the media files so the
cache survives restarts.
"""

import datetime
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pytubefix import YouTube

from video_analyzer.core.metadata import watch_url
from video_analyzer.models.schemas import CachedVideoEntry, DownloadStatus, utcnow
from video_analyzer.utils.error_handling import AlreadyDownloadingError, VideoDownloadError
from video_analyzer.utils.helpers import ensure_dir, load_json, random_suffix, save_json
from video_analyzer.utils.logger import logging

INDEX_FILE_NAME = "cache-index.json"


class VideoCache:
    """Class to handle downloading and caching YouTube videos."""

    def __init__(self, cache_dir: Path):
        """
        Initialize the cache and load its persisted index.

        Args:
            cache_dir: Directory holding the media files and the index
        """
        self.cache_dir = Path(cache_dir)
        ensure_dir(str(self.cache_dir))
        self._entries: Dict[str, CachedVideoEntry] = {}
        self._lock = threading.Lock()
        self._load_index()

    @property
    def index_path(self) -> Path:
        return self.cache_dir / INDEX_FILE_NAME

    def _load_index(self) -> None:
        if not self.index_path.exists():
            return

        try:
            index = load_json(str(self.index_path))
        except (OSError, ValueError) as e:
            logging.warning(f"Could not load video cache index: {str(e)}")
            return

        dropped = 0
        for video_id, raw in index.items():
            try:
                entry = CachedVideoEntry.model_validate(raw)
            except ValueError:
                dropped += 1
                continue

            if entry.download_status == DownloadStatus.DOWNLOADING:
                # Interrupted by a restart; the partial file is useless
                self._remove_file(entry.local_path)
                dropped += 1
                continue
            if entry.download_status == DownloadStatus.COMPLETED and not os.path.exists(entry.local_path):
                dropped += 1
                continue
            self._entries[video_id] = entry

        if dropped:
            self._save_index()
        logging.info(f"Loaded {len(self._entries)} cached videos ({dropped} stale entries dropped)")

    def _save_index(self) -> None:
        index = {video_id: entry.model_dump(mode="json") for video_id, entry in self._entries.items()}
        try:
            save_json(index, str(self.index_path))
        except OSError as e:
            logging.error(f"Failed to save video cache index: {str(e)}")

    @staticmethod
    def _remove_file(path: str) -> None:
        if path and os.path.exists(path):
            os.remove(path)

    def _lookup(self, video_id: str) -> Optional[CachedVideoEntry]:
        # Caller holds the lock
        entry = self._entries.get(video_id)
        if entry is None:
            return None
        if entry.download_status == DownloadStatus.COMPLETED and not os.path.exists(entry.local_path):
            logging.info(f"Cached file for {video_id} is missing, purging entry")
            del self._entries[video_id]
            self._save_index()
            return None
        return entry

    def get_entry(self, video_id: str) -> Optional[CachedVideoEntry]:
        """Current entry for a video id, purging completed entries whose file vanished."""
        with self._lock:
            entry = self._lookup(video_id)
            return entry.model_copy() if entry else None

    def is_cached(self, video_id: str) -> bool:
        entry = self.get_entry(video_id)
        return entry is not None and entry.download_status == DownloadStatus.COMPLETED

    def touch(self, video_id: str) -> Optional[CachedVideoEntry]:
        """Record an access to a completed entry."""
        with self._lock:
            entry = self._lookup(video_id)
            if entry is None or entry.download_status != DownloadStatus.COMPLETED:
                return None
            entry.last_accessed_at = utcnow()
            self._save_index()
            return entry.model_copy()

    def ensure_downloaded(self, video_id: str, title: str = "") -> CachedVideoEntry:
        """
        Make sure a local copy of the video exists.

        Args:
            video_id: YouTube video ID
            title: Video title, kept for display

        Returns:
            The completed cache entry

        Raises:
            AlreadyDownloadingError: If the same video is being downloaded already
            VideoDownloadError: If the download fails
        """
        with self._lock:
            entry = self._lookup(video_id)
            if entry is not None and entry.download_status == DownloadStatus.COMPLETED:
                entry.last_accessed_at = utcnow()
                self._save_index()
                logging.info(f"Using cached video: {video_id}")
                return entry.model_copy()

            if entry is not None and entry.download_status == DownloadStatus.DOWNLOADING:
                raise AlreadyDownloadingError(f"Video {video_id} is already being downloaded")

            file_name = f"{video_id}_{random_suffix()}.mp4"
            entry = CachedVideoEntry(
                video_id=video_id,
                title=title,
                local_path=str(self.cache_dir / file_name),
                file_name=file_name,
                download_status=DownloadStatus.DOWNLOADING,
            )
            self._entries[video_id] = entry
            self._save_index()

        return self._download(entry)

    def _download(self, entry: CachedVideoEntry) -> CachedVideoEntry:
        logging.info(f"Downloading video: {entry.video_id} - {entry.title}")
        last_logged = [0]

        def on_progress(stream, chunk, bytes_remaining):
            total = stream.filesize or 0
            entry.total_bytes = total or None
            entry.downloaded_bytes = total - bytes_remaining if total else entry.downloaded_bytes + len(chunk)
            if total:
                percent = int(entry.downloaded_bytes * 100 / total)
                if percent >= last_logged[0] + 10:
                    last_logged[0] = percent - percent % 10
                    logging.info(
                        f"Download progress {entry.video_id}: {percent}% "
                        f"({entry.downloaded_bytes / 1024 / 1024:.1f}MB/{total / 1024 / 1024:.1f}MB)"
                    )

        try:
            yt = YouTube(watch_url(entry.video_id), on_progress_callback=on_progress)
            # Highest resolution stream carrying both audio and video
            stream = (
                yt.streams.filter(progressive=True, file_extension="mp4")
                .order_by("resolution")
                .last()
            )
            if stream is None:
                raise VideoDownloadError(f"No combined audio/video stream for {entry.video_id}")

            logging.info(f"Selected stream {stream.resolution} for {entry.video_id}")
            stream.download(output_path=str(self.cache_dir), filename=entry.file_name)

            file_size = os.path.getsize(entry.local_path)
        except Exception as e:
            logging.error(f"Video download failed for {entry.video_id}: {str(e)}")
            self._remove_file(entry.local_path)
            with self._lock:
                entry.download_status = DownloadStatus.FAILED
                self._entries[entry.video_id] = entry
                self._save_index()
            if isinstance(e, VideoDownloadError):
                raise
            raise VideoDownloadError(f"Video download failed: {str(e)}") from e

        with self._lock:
            now = utcnow()
            entry.file_size = file_size
            entry.downloaded_bytes = file_size
            entry.downloaded_at = now
            entry.last_accessed_at = now
            entry.download_status = DownloadStatus.COMPLETED
            self._entries[entry.video_id] = entry
            self._save_index()

        logging.info(f"Video download complete: {entry.file_name} ({file_size / 1024 / 1024:.1f}MB)")
        return entry.model_copy()

    def list_entries(self) -> List[CachedVideoEntry]:
        with self._lock:
            return [entry.model_copy() for entry in self._entries.values()]

    def total_size(self) -> int:
        """Bytes held by completed entries."""
        with self._lock:
            return sum(
                e.file_size for e in self._entries.values()
                if e.download_status == DownloadStatus.COMPLETED
            )

    def delete(self, video_id: str) -> bool:
        """Delete a cached video; downloads in flight are left alone."""
        with self._lock:
            entry = self._entries.get(video_id)
            if entry is None or entry.download_status == DownloadStatus.DOWNLOADING:
                return False
            self._remove_file(entry.local_path)
            del self._entries[video_id]
            self._save_index()
        logging.info(f"Deleted cached video: {entry.file_name}")
        return True

    def evict(self, max_age_hours: float = 24, max_size_gb: float = 10) -> int:
        """
        Delete old entries until both the age and the size limits hold.

        Only completed entries are considered, least recently accessed first.

        Returns:
            Number of entries deleted
        """
        logging.info("Starting video cache cleanup")
        cutoff = utcnow() - datetime.timedelta(hours=max_age_hours)
        max_size_bytes = max_size_gb * 1024 * 1024 * 1024
        deleted = 0
        freed = 0

        with self._lock:
            completed = sorted(
                (e for e in self._entries.values() if e.download_status == DownloadStatus.COMPLETED),
                key=lambda e: e.last_accessed_at,
            )
            total = sum(e.file_size for e in completed)

            for entry in completed:
                if entry.last_accessed_at >= cutoff and total <= max_size_bytes:
                    continue
                try:
                    self._remove_file(entry.local_path)
                except OSError as e:
                    logging.error(f"Failed to delete cached video {entry.file_name}: {str(e)}")
                    continue
                del self._entries[entry.video_id]
                total -= entry.file_size
                freed += entry.file_size
                deleted += 1
                logging.info(f"Evicted cached video: {entry.file_name}")

            if deleted:
                self._save_index()

        if deleted:
            logging.info(f"Cache cleanup removed {deleted} videos, freed {freed / 1024 / 1024:.1f}MB")
        else:
            logging.info("Cache cleanup: nothing to remove")
        return deleted

    def stats(self) -> Dict[str, object]:
        """Aggregate summary of the cache."""
        entries = self.list_entries()
        total = self.total_size()
        return {
            "count": len(entries),
            "total_size_bytes": total,
            "total_size_mb": round(total / 1024 / 1024, 1),
            "completed_count": sum(e.download_status == DownloadStatus.COMPLETED for e in entries),
            "failed_count": sum(e.download_status == DownloadStatus.FAILED for e in entries),
            "downloading_count": sum(e.download_status == DownloadStatus.DOWNLOADING for e in entries),
        }
