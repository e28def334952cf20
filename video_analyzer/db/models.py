"""
SQLAlchemy models for the video analyzer database.
"""

import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, JSON

from video_analyzer.db.database import Base


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class VideoAnalysis(Base):
    """Model representing one analysis job."""
    __tablename__ = "video_analyses"

    id = Column(String(32), primary_key=True)
    source_url = Column(String(512), nullable=False)
    video_id = Column(String(20), nullable=False, index=True)  # YouTube video ID
    title = Column(String(512), nullable=False)
    channel = Column(String(255), nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    publish_date = Column(String(64), nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    subtitles = Column(JSON, nullable=False, default=list)
    segments = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="processing")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<VideoAnalysis(id='{self.id}', video_id='{self.video_id}', status='{self.status}')>"
