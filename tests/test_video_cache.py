"""
Tests for the video cache module.
"""

import datetime
import json
import os
import pytest
from unittest.mock import patch, MagicMock

from video_analyzer.core.video_cache import INDEX_FILE_NAME, VideoCache
from video_analyzer.models.schemas import CachedVideoEntry, DownloadStatus, utcnow
from video_analyzer.utils.error_handling import AlreadyDownloadingError, VideoDownloadError


def _mock_youtube(content=b"fake mp4 data"):
    """A pytubefix.YouTube stand-in whose stream writes ``content`` to disk."""
    stream = MagicMock()
    stream.resolution = "720p"
    stream.filesize = len(content)

    def download(output_path, filename):
        path = os.path.join(output_path, filename)
        with open(path, "wb") as f:
            f.write(content)
        return path

    stream.download.side_effect = download
    yt = MagicMock()
    yt.streams.filter.return_value.order_by.return_value.last.return_value = stream
    return yt


def _completed_entry(cache_dir, video_id, size, accessed_hours_ago):
    path = cache_dir / f"{video_id}_abc.mp4"
    path.write_bytes(b"x" * size)
    accessed = utcnow() - datetime.timedelta(hours=accessed_hours_ago)
    return CachedVideoEntry(
        video_id=video_id,
        local_path=str(path),
        file_name=path.name,
        file_size=size,
        downloaded_at=accessed,
        last_accessed_at=accessed,
        download_status=DownloadStatus.COMPLETED,
    )


def test_ensure_downloaded(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)

    with patch("video_analyzer.core.video_cache.YouTube", return_value=_mock_youtube()) as mock_youtube:
        entry = cache.ensure_downloaded(test_video_id, "Test Video")

    mock_youtube.assert_called_once()
    assert entry.download_status == DownloadStatus.COMPLETED
    assert entry.file_name.startswith(f"{test_video_id}_")
    assert entry.file_name.endswith(".mp4")
    assert entry.file_size == len(b"fake mp4 data")
    assert os.path.exists(entry.local_path)

    with open(tmp_path / INDEX_FILE_NAME, encoding="utf-8") as f:
        index = json.load(f)
    assert index[test_video_id]["download_status"] == "completed"


def test_second_call_is_cache_hit(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)

    with patch("video_analyzer.core.video_cache.YouTube", return_value=_mock_youtube()) as mock_youtube:
        first = cache.ensure_downloaded(test_video_id)
        second = cache.ensure_downloaded(test_video_id)

    assert mock_youtube.call_count == 1
    assert second.local_path == first.local_path
    assert second.last_accessed_at >= first.last_accessed_at


def test_download_failure_marks_failed(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)

    with patch("video_analyzer.core.video_cache.YouTube", side_effect=Exception("403 Forbidden")):
        with pytest.raises(VideoDownloadError):
            cache.ensure_downloaded(test_video_id)

    entry = cache.get_entry(test_video_id)
    assert entry.download_status == DownloadStatus.FAILED
    assert not os.path.exists(entry.local_path)

    # A failed entry is retried on the next call
    with patch("video_analyzer.core.video_cache.YouTube", return_value=_mock_youtube()):
        assert cache.ensure_downloaded(test_video_id).download_status == DownloadStatus.COMPLETED


def test_no_progressive_stream(tmp_path, test_video_id):
    yt = _mock_youtube()
    yt.streams.filter.return_value.order_by.return_value.last.return_value = None
    cache = VideoCache(tmp_path)

    with patch("video_analyzer.core.video_cache.YouTube", return_value=yt):
        with pytest.raises(VideoDownloadError):
            cache.ensure_downloaded(test_video_id)


def test_concurrent_download_fails_fast(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)
    cache._entries[test_video_id] = CachedVideoEntry(
        video_id=test_video_id,
        local_path=str(tmp_path / "partial.mp4"),
        file_name="partial.mp4",
        download_status=DownloadStatus.DOWNLOADING,
    )

    with patch("video_analyzer.core.video_cache.YouTube") as mock_youtube:
        with pytest.raises(AlreadyDownloadingError):
            cache.ensure_downloaded(test_video_id)
        mock_youtube.assert_not_called()


def test_missing_file_is_purged_on_lookup(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)
    entry = _completed_entry(tmp_path, test_video_id, 10, 0)
    cache._entries[test_video_id] = entry
    os.remove(entry.local_path)

    assert cache.get_entry(test_video_id) is None
    assert not cache.is_cached(test_video_id)


def test_index_reload_drops_stale_entries(tmp_path):
    completed = _completed_entry(tmp_path, "AAAAAAAAAAA", 10, 0)
    vanished = _completed_entry(tmp_path, "BBBBBBBBBBB", 10, 0)
    os.remove(vanished.local_path)
    partial_path = tmp_path / "CCCCCCCCCCC_abc.mp4"
    partial_path.write_bytes(b"half")
    interrupted = CachedVideoEntry(
        video_id="CCCCCCCCCCC",
        local_path=str(partial_path),
        file_name=partial_path.name,
        download_status=DownloadStatus.DOWNLOADING,
    )
    index = {e.video_id: e.model_dump(mode="json") for e in (completed, vanished, interrupted)}
    (tmp_path / INDEX_FILE_NAME).write_text(json.dumps(index), encoding="utf-8")

    cache = VideoCache(tmp_path)

    assert cache.is_cached("AAAAAAAAAAA")
    assert cache.get_entry("BBBBBBBBBBB") is None
    assert cache.get_entry("CCCCCCCCCCC") is None
    assert not partial_path.exists()


def test_evict_by_age(tmp_path):
    cache = VideoCache(tmp_path)
    old = _completed_entry(tmp_path, "AAAAAAAAAAA", 10, 48)
    fresh = _completed_entry(tmp_path, "BBBBBBBBBBB", 10, 1)
    cache._entries = {old.video_id: old, fresh.video_id: fresh}

    assert cache.evict(max_age_hours=24, max_size_gb=10) == 1
    assert not os.path.exists(old.local_path)
    assert cache.is_cached("BBBBBBBBBBB")


def test_evict_by_size_oldest_first(tmp_path):
    cache = VideoCache(tmp_path)
    entries = [
        _completed_entry(tmp_path, "AAAAAAAAAAA", 600, 3),
        _completed_entry(tmp_path, "BBBBBBBBBBB", 600, 2),
        _completed_entry(tmp_path, "CCCCCCCCCCC", 600, 1),
    ]
    cache._entries = {e.video_id: e for e in entries}

    # 1000 bytes cap
    deleted = cache.evict(max_age_hours=24, max_size_gb=1000 / (1024 ** 3))

    assert deleted == 2
    assert [e.video_id for e in cache.list_entries()] == ["CCCCCCCCCCC"]


def test_evict_skips_downloading(tmp_path, test_video_id):
    cache = VideoCache(tmp_path)
    cache._entries[test_video_id] = CachedVideoEntry(
        video_id=test_video_id,
        local_path=str(tmp_path / "partial.mp4"),
        file_name="partial.mp4",
        download_status=DownloadStatus.DOWNLOADING,
        last_accessed_at=utcnow() - datetime.timedelta(days=3),
    )

    assert cache.evict(max_age_hours=1, max_size_gb=0) == 0
    assert cache.get_entry(test_video_id) is not None


def test_delete_and_stats(tmp_path):
    cache = VideoCache(tmp_path)
    entry = _completed_entry(tmp_path, "AAAAAAAAAAA", 2048, 0)
    cache._entries[entry.video_id] = entry

    stats = cache.stats()
    assert stats["count"] == 1
    assert stats["completed_count"] == 1
    assert stats["total_size_bytes"] == 2048

    assert cache.delete("AAAAAAAAAAA")
    assert not os.path.exists(entry.local_path)
    assert not cache.delete("AAAAAAAAAAA")
    assert cache.stats()["count"] == 0
