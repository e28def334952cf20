"""
Configuration for pytest tests.
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

# Configuration is read at import time, so the environment is prepared
# before anything from video_analyzer is imported.
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="video_analyzer_test_"))
os.environ["GROQ_API_KEY"] = os.environ.get("GROQ_API_KEY", "test_api_key")
os.environ["DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["CACHE_DIR"] = str(_TEST_DATA_DIR / "cached-videos")
os.environ["SCREENSHOTS_DIR"] = str(_TEST_DATA_DIR / "screenshots")
os.environ["SUMMARIES_DIR"] = str(_TEST_DATA_DIR / "summaries")
os.environ["STORE_BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "development"

from video_analyzer.models.schemas import (  # noqa: E402
    SubtitleLine,
    SummarySegment,
    VideoMetadata,
)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_data():
    """Remove the temporary data directory after the session."""
    yield
    shutil.rmtree(_TEST_DATA_DIR, ignore_errors=True)


@pytest.fixture(scope="session")
def test_video_url():
    """Return a test YouTube video URL."""
    return "https://youtu.be/V3TUEeB0kW0?si=-InVol0JhtWji-6R"


@pytest.fixture(scope="session")
def test_video_id():
    return "V3TUEeB0kW0"


@pytest.fixture
def metadata(test_video_id):
    """Fixture to create VideoMetadata."""
    return VideoMetadata(
        video_id=test_video_id,
        title="Test Video",
        channel="Test Channel",
        duration=300,
        publish_date="2024-01-01T00:00:00+00:00",
        thumbnail_url=f"https://img.youtube.com/vi/{test_video_id}/maxresdefault.jpg",
    )


@pytest.fixture
def subtitles():
    """Fixture to create an ordered transcript."""
    return [
        SubtitleLine(start=0.0, end=5.0, text="Welcome to the channel."),
        SubtitleLine(start=5.0, end=12.0, text="Today we talk about testing."),
        SubtitleLine(start=12.0, end=20.0, text="First, unit tests."),
        SubtitleLine(start=20.0, end=31.0, text="Then, integration tests."),
        SubtitleLine(start=31.0, end=40.0, text="Thanks for watching."),
    ]


@pytest.fixture
def segments():
    """Fixture to create summarized segments."""
    return [
        SummarySegment(id="segment-1", start_time=0, end_time=12, title="Intro", ai_summary="Opening."),
        SummarySegment(id="segment-2", start_time=12, end_time=20, title="Unit tests", ai_summary="Unit."),
        SummarySegment(id="segment-3", start_time=20, end_time=31, title="Integration", ai_summary="Integ."),
        SummarySegment(id="segment-4", start_time=31, end_time=40, title="Outro", ai_summary="Bye."),
    ]
