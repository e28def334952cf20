"""
Analysis job storage.

``AnalysisStore`` is the read/write contract the pipeline depends on. Two
backings are provided: an in-process dictionary (the default, enough for a
single-process deployment) and a SQLAlchemy table for durability across
restarts. Writes are serialized per job id in both.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, List, Optional

from video_analyzer.db.database import (
    create_db_engine,
    create_session_factory,
    get_db,
    init_db,
)
from video_analyzer.db.models import VideoAnalysis
from video_analyzer.models.schemas import (
    AnalysisJob,
    AnalysisStatus,
    SubtitleLine,
    SummarySegment,
    VideoMetadata,
    can_transition,
)
from video_analyzer.utils.error_handling import (
    InvalidStatusTransitionError,
    JobNotFoundError,
)
from video_analyzer.utils.logger import logging

# Fields a caller may change after creation; metadata and identity are fixed.
MUTABLE_FIELDS = {"subtitles", "segments", "status"}


class AnalysisStore(ABC):
    """Read/write contract for analysis jobs."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, job_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(job_id, threading.Lock())

    @abstractmethod
    def get(self, job_id: str) -> Optional[AnalysisJob]:
        """Get a job by id."""

    @abstractmethod
    def get_by_video_id(self, video_id: str) -> Optional[AnalysisJob]:
        """Get the job for a YouTube video id, if one exists."""

    @abstractmethod
    def list_all(self) -> List[AnalysisJob]:
        """All jobs, oldest first."""

    @abstractmethod
    def _insert(self, job: AnalysisJob) -> None:
        """Persist a freshly built job."""

    @abstractmethod
    def _replace(self, job: AnalysisJob) -> None:
        """Persist the new state of an existing job."""

    def create(self, source_url: str, metadata: VideoMetadata) -> AnalysisJob:
        """Create a new ``processing`` job for a resolved video."""
        job = AnalysisJob(
            id=uuid.uuid4().hex,
            source_url=source_url,
            video_id=metadata.video_id,
            metadata=metadata,
        )
        self._insert(job)
        logging.info(f"Created analysis job {job.id} for video {job.video_id}")
        return job.model_copy(deep=True)

    def update(self, job_id: str, **changes) -> AnalysisJob:
        """
        Apply changes to a job.

        Args:
            job_id: Job to update
            **changes: Any of ``subtitles``, ``segments``, ``status``

        Returns:
            The updated job

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidStatusTransitionError: If the status change is not allowed
            ValueError: If an immutable field is passed
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update immutable job fields: {sorted(unknown)}")

        with self._lock_for(job_id):
            job = self.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Analysis job {job_id} not found")

            if "status" in changes:
                new_status = AnalysisStatus(changes["status"])
                if not can_transition(job.status, new_status):
                    raise InvalidStatusTransitionError(
                        f"Job {job_id} cannot move from {job.status.value} to {new_status.value}"
                    )
                job.status = new_status
            if "subtitles" in changes:
                job.subtitles = [SubtitleLine.model_validate(s) for s in changes["subtitles"]]
            if "segments" in changes:
                job.segments = [SummarySegment.model_validate(s) for s in changes["segments"]]

            self._replace(job)
            return job.model_copy(deep=True)

    def reset_for_regeneration(self, job_id: str) -> AnalysisJob:
        """Clear results and move a job back to ``processing``."""
        logging.info(f"Resetting analysis job {job_id} for regeneration")
        return self.update(
            job_id, subtitles=[], segments=[], status=AnalysisStatus.PROCESSING
        )


class InMemoryAnalysisStore(AnalysisStore):
    """Jobs kept in a dictionary for the lifetime of the process."""

    def __init__(self):
        super().__init__()
        self._jobs: Dict[str, AnalysisJob] = {}

    def get(self, job_id: str) -> Optional[AnalysisJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    def get_by_video_id(self, video_id: str) -> Optional[AnalysisJob]:
        for job in list(self._jobs.values()):
            if job.video_id == video_id:
                return job.model_copy(deep=True)
        return None

    def list_all(self) -> List[AnalysisJob]:
        jobs = sorted(self._jobs.values(), key=lambda j: j.created_at)
        return [job.model_copy(deep=True) for job in jobs]

    def _insert(self, job: AnalysisJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    def _replace(self, job: AnalysisJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)


class SqlAlchemyAnalysisStore(AnalysisStore):
    """Jobs persisted in the ``video_analyses`` table."""

    def __init__(self, database_url: str):
        super().__init__()
        self.engine = create_db_engine(database_url)
        self._session_factory = create_session_factory(self.engine)
        init_db(self.engine)

    @contextmanager
    def _session(self):
        yield from get_db(self._session_factory)

    @staticmethod
    def _to_job(row: VideoAnalysis) -> AnalysisJob:
        return AnalysisJob(
            id=row.id,
            source_url=row.source_url,
            video_id=row.video_id,
            metadata=VideoMetadata(
                video_id=row.video_id,
                title=row.title,
                channel=row.channel,
                duration=row.duration,
                publish_date=row.publish_date,
                thumbnail_url=row.thumbnail_url or "",
            ),
            subtitles=row.subtitles or [],
            segments=row.segments or [],
            status=AnalysisStatus(row.status),
            created_at=row.created_at,
        )

    def get(self, job_id: str) -> Optional[AnalysisJob]:
        with self._session() as db:
            row = db.query(VideoAnalysis).filter(VideoAnalysis.id == job_id).first()
            return self._to_job(row) if row else None

    def get_by_video_id(self, video_id: str) -> Optional[AnalysisJob]:
        with self._session() as db:
            row = (
                db.query(VideoAnalysis)
                .filter(VideoAnalysis.video_id == video_id)
                .order_by(VideoAnalysis.created_at)
                .first()
            )
            return self._to_job(row) if row else None

    def list_all(self) -> List[AnalysisJob]:
        with self._session() as db:
            rows = db.query(VideoAnalysis).order_by(VideoAnalysis.created_at).all()
            return [self._to_job(row) for row in rows]

    def _insert(self, job: AnalysisJob) -> None:
        with self._session() as db:
            db.add(VideoAnalysis(
                id=job.id,
                source_url=job.source_url,
                video_id=job.video_id,
                title=job.metadata.title,
                channel=job.metadata.channel,
                duration=job.metadata.duration,
                publish_date=job.metadata.publish_date,
                thumbnail_url=job.metadata.thumbnail_url,
                subtitles=[],
                segments=[],
                status=job.status.value,
                created_at=job.created_at,
            ))
            db.commit()

    def _replace(self, job: AnalysisJob) -> None:
        with self._session() as db:
            row = db.query(VideoAnalysis).filter(VideoAnalysis.id == job.id).first()
            if row is None:
                raise JobNotFoundError(f"Analysis job {job.id} not found")
            row.subtitles = [s.model_dump(mode="json") for s in job.subtitles]
            row.segments = [s.model_dump(mode="json") for s in job.segments]
            row.status = job.status.value
            db.commit()


def create_store(backend: str, database_url: Optional[str] = None) -> AnalysisStore:
    """Build the store selected by configuration."""
    if backend == "memory":
        return InMemoryAnalysisStore()
    if backend == "sql":
        if not database_url:
            raise ValueError("DATABASE_URL is required for the sql store backend")
        return SqlAlchemyAnalysisStore(database_url)
    raise ValueError(f"Unknown store backend: {backend}")
