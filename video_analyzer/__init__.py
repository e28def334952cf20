"""
YouTube Video Analyzer.

Turns a YouTube URL into a timestamped, topic-segmented AI summary with one
representative frame per segment, reporting live progress while it works.
"""

from video_analyzer.config import config

__version__ = config.APP_VERSION
