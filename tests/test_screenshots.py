"""
Tests for the screenshot generator module.
"""

import subprocess
import pytest
from unittest.mock import patch, MagicMock

from video_analyzer.core.screenshots import ScreenshotGenerator, fallback_thumbnail
from video_analyzer.models.schemas import CachedVideoEntry, DownloadStatus
from video_analyzer.utils.error_handling import AlreadyDownloadingError, VideoDownloadError


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "video.mp4"
    path.write_bytes(b"fake mp4 data")
    return path


@pytest.fixture
def video_cache(video_file, test_video_id):
    cache = MagicMock()
    cache.ensure_downloaded.return_value = CachedVideoEntry(
        video_id=test_video_id,
        local_path=str(video_file),
        file_name=video_file.name,
        file_size=13,
        download_status=DownloadStatus.COMPLETED,
    )
    return cache


@pytest.fixture
def generator(video_cache, tmp_path):
    return ScreenshotGenerator(video_cache, tmp_path / "screenshots")


def _ffmpeg_ok(cmd, **kwargs):
    """Pretend to be ffmpeg: write the output file named last on the command line."""
    with open(cmd[-1], "wb") as f:
        f.write(b"jpeg")
    return subprocess.CompletedProcess(cmd, 0, "", "")


def test_generate(generator, test_video_id):
    with patch("video_analyzer.core.screenshots.subprocess.run", side_effect=_ffmpeg_ok) as mock_run:
        urls = generator.generate(test_video_id, [0, 12.5, 31], "Test Video")

    assert mock_run.call_count == 3
    cmd = mock_run.call_args_list[1][0][0]
    assert cmd[cmd.index("-ss") + 1] == "12.5"
    assert cmd[cmd.index("-vf") + 1] == "scale=1280:720"
    assert cmd[cmd.index("-frames:v") + 1] == "1"

    assert len(urls) == 3
    assert all(url.startswith("/screenshots/screenshot_") for url in urls)
    assert f"screenshot_{test_video_id}_12_5s_" in urls[1]
    assert len(set(urls)) == 3


def test_single_failure_falls_back_at_that_index(generator, test_video_id):
    calls = []

    def flaky(cmd, **kwargs):
        calls.append(cmd)
        if len(calls) == 2:
            return subprocess.CompletedProcess(cmd, 1, "", "Invalid data found")
        return _ffmpeg_ok(cmd)

    with patch("video_analyzer.core.screenshots.subprocess.run", side_effect=flaky):
        urls = generator.generate(test_video_id, [0, 10, 20])

    assert urls[0].startswith("/screenshots/")
    assert urls[1] == fallback_thumbnail(test_video_id)
    assert urls[2].startswith("/screenshots/")


def test_missing_output_file_falls_back(generator, test_video_id):
    with patch(
        "video_analyzer.core.screenshots.subprocess.run",
        return_value=subprocess.CompletedProcess([], 0, "", ""),
    ):
        urls = generator.generate(test_video_id, [5])

    assert urls == [fallback_thumbnail(test_video_id)]


def test_timeout_falls_back(generator, test_video_id):
    with patch(
        "video_analyzer.core.screenshots.subprocess.run",
        side_effect=subprocess.TimeoutExpired("ffmpeg", 60),
    ):
        urls = generator.generate(test_video_id, [5, 6])

    assert urls == [fallback_thumbnail(test_video_id)] * 2


@pytest.mark.parametrize("error", [
    VideoDownloadError("403 Forbidden"),
    AlreadyDownloadingError("busy"),
])
def test_cache_failure_returns_all_fallbacks(generator, video_cache, test_video_id, error):
    video_cache.ensure_downloaded.side_effect = error

    with patch("video_analyzer.core.screenshots.subprocess.run") as mock_run:
        urls = generator.generate(test_video_id, [0, 10, 20, 30])

    mock_run.assert_not_called()
    assert urls == [fallback_thumbnail(test_video_id)] * 4


def test_empty_timestamps(generator, test_video_id):
    assert generator.generate(test_video_id, []) == []


def test_ffmpeg_available(generator):
    with patch("video_analyzer.core.screenshots.shutil.which", return_value="/usr/bin/ffmpeg"):
        assert generator.ffmpeg_available()
    with patch("video_analyzer.core.screenshots.shutil.which", return_value=None):
        assert not generator.ffmpeg_available()
