"""
Module for segmenting and summarizing transcripts using LLM models.
"""

import json
import os
from typing import List, Optional

from pydantic import ValidationError
from langchain_core.prompts import ChatPromptTemplate
from langchain.chat_models import init_chat_model

from video_analyzer.core.prompts import system_template, segmentation_template
from video_analyzer.models.schemas import (
    SegmentationResult,
    SubtitleLine,
    SummaryConfig,
    SummarySegment,
)
from video_analyzer.utils.error_handling import MalformedSummaryError, SummarizationError
from video_analyzer.utils.helpers import format_timestamp
from video_analyzer.utils.logger import logging

segmentation_prompt = ChatPromptTemplate.from_messages([
    ("system", system_template),
    ("human", segmentation_template),
])


def format_transcript(subtitles: List[SubtitleLine]) -> str:
    """One ``[mm:ss] text`` line per subtitle."""
    return "\n".join(f"[{format_timestamp(sub.start)}] {sub.text}" for sub in subtitles)


def attach_subtitles(
    start_time: float, end_time: float, subtitles: List[SubtitleLine]
) -> List[SubtitleLine]:
    """Subtitles overlapping ``[start_time, end_time)``, boundary-straddling lines included."""
    return [sub.model_copy() for sub in subtitles if sub.overlaps(start_time, end_time)]


def parse_segmentation(content: str) -> SegmentationResult:
    """
    Validate a raw model response against the segmentation schema.

    Raises:
        MalformedSummaryError: If the content is not JSON or violates the schema
    """
    try:
        payload = json.loads(content)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedSummaryError(f"Model response is not valid JSON: {str(e)}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("segments"), list):
        raise MalformedSummaryError("Model response has no 'segments' array")

    try:
        return SegmentationResult.model_validate(payload)
    except ValidationError as e:
        raise MalformedSummaryError(f"Model response violates the segment schema: {e}") from e


class TranscriptSummarizer:
    """Class to handle transcript segmentation and summarization."""

    def __init__(self, config: SummaryConfig, api_key: Optional[str] = None):
        """
        Initialize the summarizer.

        Args:
            config: Configuration for summarization
            api_key: Groq API key (if None, will try to get from environment)
        """
        self.config = config
        self.api_key = api_key or os.getenv("GROQ_API_KEY")

    @property
    def model(self) -> str:
        return self.config.model

    def _build_model(self):
        if not self.api_key:
            raise SummarizationError("Groq API key is required. Set it in .env file or pass directly.")

        return init_chat_model(
            model=self.config.model,
            model_provider=self.config.provider,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            api_key=self.api_key,
            model_kwargs={"response_format": {"type": "json_object"}},
        )

    def summarize(self, title: str, subtitles: List[SubtitleLine]) -> List[SummarySegment]:
        """
        Split a transcript into topical segments with summaries.

        Args:
            title: Video title
            subtitles: Ordered subtitle lines of the video

        Returns:
            Segments with their overlapping subtitles attached and empty screenshot URLs

        Raises:
            SummarizationError: If the model call fails
            MalformedSummaryError: If the model response is not the expected JSON
        """
        transcript = format_transcript(subtitles)
        logging.info(
            f"Requesting segmentation from {self.config.model} "
            f"({len(subtitles)} subtitle lines, {len(transcript)} characters)"
        )

        llm = self._build_model()
        messages = segmentation_prompt.format_messages(
            title=title,
            transcript=transcript,
            language=self.config.language,
            min_segments=self.config.min_segments,
            max_segments=self.config.max_segments,
        )
        try:
            response = llm.invoke(messages)
        except Exception as e:
            logging.error(f"Error generating video summary: {str(e)}")
            raise SummarizationError(f"Failed to generate video summary: {str(e)}") from e

        result = parse_segmentation(response.content)

        # Bounds are taken as returned by the model
        segments = []
        for index, item in enumerate(result.segments, start=1):
            segments.append(SummarySegment(
                id=item.id or f"segment-{index}",
                start_time=item.start_time,
                end_time=item.end_time,
                title=item.title,
                ai_summary=item.ai_summary,
                screenshot_url="",
                subtitles=attach_subtitles(item.start_time, item.end_time, subtitles),
            ))

        logging.info(f"Model returned {len(segments)} segments")
        return segments
