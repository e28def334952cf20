"""
Data models for the video analyzer application.
"""
import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AnalysisStatus(str, Enum):
    """Lifecycle states of an analysis job."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed status transitions; regeneration moves a terminal job back to processing.
STATUS_TRANSITIONS = {
    AnalysisStatus.PROCESSING: {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED},
    AnalysisStatus.COMPLETED: {AnalysisStatus.PROCESSING},
    AnalysisStatus.FAILED: {AnalysisStatus.PROCESSING},
}


def can_transition(current: AnalysisStatus, new: AnalysisStatus) -> bool:
    """Whether a job may move from ``current`` to ``new``."""
    return current == new or new in STATUS_TRANSITIONS[current]


class SubtitleLine(BaseModel):
    """One timed caption line."""
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str

    @model_validator(mode="after")
    def check_bounds(self):
        if self.end < self.start:
            raise ValueError("subtitle end must not precede start")
        return self

    def overlaps(self, start_time: float, end_time: float) -> bool:
        """Whether this line intersects ``[start_time, end_time)``."""
        return self.start < end_time and self.end > start_time


class SummarySegment(BaseModel):
    """A topical slice of the video with its summary and representative frame."""
    id: str
    start_time: float
    end_time: float
    title: str
    ai_summary: str
    screenshot_url: str = ""
    subtitles: List[SubtitleLine] = Field(default_factory=list)


class VideoMetadata(BaseModel):
    """Descriptive metadata for a YouTube video."""
    video_id: str
    title: str
    channel: str
    duration: int = Field(default=0, ge=0)  # seconds
    publish_date: str
    thumbnail_url: str

    model_config = {"from_attributes": True}


class AnalysisJob(BaseModel):
    """Durable record of one analysis job."""
    id: str
    source_url: str
    video_id: str
    metadata: VideoMetadata
    subtitles: List[SubtitleLine] = Field(default_factory=list)
    segments: List[SummarySegment] = Field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.PROCESSING
    created_at: datetime.datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}

    @property
    def is_terminal(self) -> bool:
        return self.status in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


class DownloadStatus(str, Enum):
    """Download states of a cached video."""
    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class CachedVideoEntry(BaseModel):
    """A tracked local copy of a source video."""
    video_id: str
    title: str = ""
    local_path: str
    file_name: str
    file_size: int = 0
    downloaded_at: datetime.datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime.datetime = Field(default_factory=utcnow)
    download_status: DownloadStatus = DownloadStatus.PENDING
    downloaded_bytes: int = 0
    total_bytes: Optional[int] = None


class ProgressStatus(str, Enum):
    """Status of a single pipeline step in a progress event."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class ProgressEvent(BaseModel):
    """Transient progress notification for one job."""
    job_id: str
    step: str
    progress: int = Field(ge=0, le=100)
    status: ProgressStatus
    message: str
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())
    details: Optional[Dict[str, Any]] = None

    def to_message(self) -> Dict[str, Any]:
        """Wire form pushed to progress subscribers."""
        return {"type": "progress", "data": self.model_dump(mode="json")}


class LLMSegment(BaseModel):
    """One segment exactly as the language model must return it."""
    id: Optional[str] = None
    start_time: float = Field(alias="startTime")
    end_time: float = Field(alias="endTime")
    title: str
    ai_summary: str = Field(alias="aiSummary")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class SegmentationResult(BaseModel):
    """Top-level JSON object expected from the language model."""
    segments: List[LLMSegment] = Field(min_length=1)


class SummaryConfig(BaseModel):
    """Configuration for summarization operations."""
    model: str
    provider: str = "groq"
    temperature: float = 0.3
    max_tokens: int = 4096
    language: str = "English"
    min_segments: int = 4
    max_segments: int = 6
