"""
Database connection and session management for the video analyzer.
"""

from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

# Create base class for SQLAlchemy models
Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine, relaxing SQLite's same-thread check for worker threads."""
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {}
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Initialize the database by creating all tables."""
    from video_analyzer.db.models import VideoAnalysis  # noqa: F401

    # Create all tables
    Base.metadata.create_all(bind=engine)


def get_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Get a database session that is always closed afterwards.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
