"""
Timed transcript extraction from YouTube caption tracks.
"""

import html
import re
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Sequence

from pytubefix import YouTube

from video_analyzer.core.metadata import watch_url
from video_analyzer.models.schemas import SubtitleLine
from video_analyzer.utils.error_handling import NoCaptionsError
from video_analyzer.utils.logger import logging

# Substituted by the pipeline when no transcript can be extracted.
DEMO_SUBTITLES = [
    SubtitleLine(start=0, end=10, text="Opening of the video..."),
    SubtitleLine(start=10, end=30, text="Introduction to the main content..."),
    SubtitleLine(start=30, end=60, text="Detailed walkthrough of the topic..."),
    SubtitleLine(start=60, end=90, text="Examples and case analysis..."),
    SubtitleLine(start=90, end=120, text="Summary and conclusions..."),
]


def demo_subtitles() -> List[SubtitleLine]:
    return [line.model_copy() for line in DEMO_SUBTITLES]


def clean_caption_text(text: str) -> str:
    """Decode HTML entities and collapse newlines and runs of whitespace."""
    return re.sub(r"\s+", " ", html.unescape(text)).strip()


def parse_caption_xml(xml_text: str) -> List[SubtitleLine]:
    """
    Parse a YouTube timed-text document.

    Both layouts YouTube serves are understood: ``<text start dur>`` with
    seconds, and format 3 ``<p t d>`` with milliseconds. Lines without text or
    with unreadable timing are skipped.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logging.warning(f"Unparsable caption document: {str(e)}")
        return []

    lines = []
    for node in root.iter():
        try:
            if node.tag == "text":
                start = float(node.get("start"))
                duration = float(node.get("dur", 0))
            elif node.tag == "p":
                start = float(node.get("t")) / 1000
                duration = float(node.get("d", 0)) / 1000
            else:
                continue
        except (TypeError, ValueError):
            continue

        text = clean_caption_text("".join(node.itertext()))
        if text:
            lines.append(SubtitleLine(start=start, end=start + max(duration, 0), text=text))

    return lines


def _matches(code: str, languages: Iterable[str]) -> bool:
    # Auto-generated tracks carry an "a." prefix
    base = code[2:] if code.startswith("a.") else code
    return any(base.lower() == lang.lower() for lang in languages)


def select_caption_track(tracks: Sequence, primary: Sequence[str], secondary: Sequence[str]):
    """First track in the primary languages, else the secondary ones, else the first track."""
    if not tracks:
        return None
    for languages in (primary, secondary):
        for track in tracks:
            if _matches(track.code, languages):
                return track
    return tracks[0]


class SubtitleExtractor:
    """Retrieves a timed transcript for a video id."""

    def __init__(self, primary_languages: Sequence[str], secondary_languages: Sequence[str]):
        self.primary_languages = list(primary_languages)
        self.secondary_languages = list(secondary_languages)

    def extract(self, video_id: str) -> List[SubtitleLine]:
        """
        Extract the transcript of a video.

        Args:
            video_id: YouTube video ID

        Returns:
            Ordered subtitle lines

        Raises:
            NoCaptionsError: If no track exists or nothing usable could be parsed
        """
        logging.info(f"Fetching caption tracks for video: {video_id}")
        try:
            yt = YouTube(watch_url(video_id))
            tracks = list(yt.captions)
        except Exception as e:
            raise NoCaptionsError(f"Could not list captions for {video_id}: {str(e)}") from e

        logging.info(f"Available caption tracks: {len(tracks)}")
        track = select_caption_track(tracks, self.primary_languages, self.secondary_languages)
        if track is None:
            raise NoCaptionsError(f"No caption tracks available for {video_id}")

        logging.info(f"Selected caption track: {track.code}")
        xml_text = self._fetch_track(track, video_id)
        subtitles = parse_caption_xml(xml_text) if xml_text else []
        if not subtitles:
            raise NoCaptionsError(f"Caption track {track.code} for {video_id} had no usable lines")

        subtitles.sort(key=lambda line: line.start)
        logging.info(f"Successfully extracted {len(subtitles)} subtitle lines")
        return subtitles

    @staticmethod
    def _fetch_track(track, video_id: str) -> Optional[str]:
        try:
            return track.xml_captions
        except Exception as e:
            raise NoCaptionsError(
                f"Failed to download caption track {track.code} for {video_id}: {str(e)}"
            ) from e
