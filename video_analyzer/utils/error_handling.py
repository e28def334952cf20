"""
Centralized error types and error helpers for the application.
"""

import json
from typing import Dict, Any

from video_analyzer.config import config
from video_analyzer.utils.logger import logging


class VideoAnalyzerError(Exception):
    """Base class for all application errors."""


class InvalidUrlError(VideoAnalyzerError):
    """The submitted URL is not a recognizable YouTube video URL."""


class ExtractionError(VideoAnalyzerError):
    """Video metadata could not be looked up (removed, private, network)."""


class NoCaptionsError(VideoAnalyzerError):
    """No usable caption track exists for the video."""


class SummarizationError(VideoAnalyzerError):
    """The language model call failed."""


class MalformedSummaryError(SummarizationError):
    """The language model answered, but not with the expected JSON schema."""


class VideoDownloadError(VideoAnalyzerError):
    """The source video could not be downloaded into the cache."""


class AlreadyDownloadingError(VideoDownloadError):
    """A download for the same video id is already in flight."""


class ScreenshotError(VideoAnalyzerError):
    """A single frame could not be extracted."""


class JobNotFoundError(VideoAnalyzerError):
    """No analysis job exists for the given id."""


class InvalidStatusTransitionError(VideoAnalyzerError):
    """A job status update would break the allowed status transitions."""


class ChannelClosedError(VideoAnalyzerError):
    """A progress channel can no longer deliver messages."""


def error_kind(error: BaseException) -> str:
    """Tag used for an error in progress events and API bodies."""
    return type(error).__name__


def log_diagnostic_info(context: Dict[str, Any]):
    """
    Log diagnostic information for debugging.

    Args:
        context: Dictionary of diagnostic information
    """
    if not config.DEBUG:
        return

    try:
        logging.info(f"Diagnostic info: {json.dumps(context, default=str)}")
    except (TypeError, ValueError) as e:
        logging.error(f"Error logging diagnostic info: {str(e)}")
