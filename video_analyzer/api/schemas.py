from pydantic import BaseModel
from typing import Optional
import datetime

from video_analyzer.models.schemas import DownloadStatus


class AnalyzeRequest(BaseModel):
    """Model for requesting a video analysis."""
    url: str
    force_regenerate: Optional[bool] = False


class CacheStatusResponse(BaseModel):
    """Model for the cache state of one video."""
    video_id: str
    cached: bool
    status: Optional[DownloadStatus] = None
    file_size: Optional[int] = None
    file_name: Optional[str] = None
    downloaded_at: Optional[datetime.datetime] = None
    last_accessed_at: Optional[datetime.datetime] = None
    downloaded_bytes: Optional[int] = None
    total_bytes: Optional[int] = None


class CacheStatsResponse(BaseModel):
    """Model for aggregate cache statistics."""
    count: int
    total_size_bytes: int
    total_size_mb: float
    completed_count: int
    failed_count: int
    downloading_count: int


class CleanupResponse(BaseModel):
    """Model for a manual cache cleanup."""
    deleted: int
