"""
Core functionality for the YouTube video analyzer.

This package contains modules for resolving video metadata, extracting
subtitles, summarizing transcripts into topic segments, caching videos,
generating screenshots and publishing pipeline progress.
"""
