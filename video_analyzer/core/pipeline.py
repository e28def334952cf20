"""
Analysis pipeline: drives one job from subtitles to a finished, illustrated
topic summary, recording every stage in the store and on the progress bus.
"""

import asyncio
import threading
import traceback
from enum import Enum
from typing import Dict, List, Set, Tuple

from video_analyzer.core.metadata import MetadataResolver, thumbnail_url
from video_analyzer.core.progress import ProgressBus
from video_analyzer.core.screenshots import ScreenshotGenerator
from video_analyzer.core.subtitles import SubtitleExtractor, demo_subtitles
from video_analyzer.core.summarizer import TranscriptSummarizer
from video_analyzer.db.store import AnalysisStore
from video_analyzer.models.schemas import (
    AnalysisJob,
    AnalysisStatus,
    ProgressStatus,
    SubtitleLine,
    SummarySegment,
)
from video_analyzer.utils.error_handling import error_kind, log_diagnostic_info
from video_analyzer.utils.helpers import truncate_text
from video_analyzer.utils.logger import logging


class PipelineStep(str, Enum):
    """Step names carried by progress events."""
    INIT = "initializing"
    SUBTITLES = "extracting_subtitles"
    SUMMARY = "generating_summary"
    SCREENSHOTS = "generating_screenshots"
    FINALIZE = "finalizing"


class AnalysisPipeline:
    """Runs the ordered stages of an analysis job."""

    def __init__(
        self,
        store: AnalysisStore,
        bus: ProgressBus,
        subtitle_extractor: SubtitleExtractor,
        summarizer: TranscriptSummarizer,
        screenshot_generator: ScreenshotGenerator,
    ):
        self.store = store
        self.bus = bus
        self.subtitle_extractor = subtitle_extractor
        self.summarizer = summarizer
        self.screenshot_generator = screenshot_generator
        self._active: Set[str] = set()
        self._scheduled: Set[str] = set()

    def mark_scheduled(self, job_id: str) -> None:
        """Record that a run for ``job_id`` has been handed to a background task."""
        self._scheduled.add(job_id)

    def is_running(self, job_id: str) -> bool:
        """Whether a run for the job is scheduled or in progress in this process."""
        return job_id in self._active or job_id in self._scheduled

    async def process(self, job_id: str) -> None:
        """
        Process one job to a terminal state.

        Subtitle and screenshot problems are absorbed with substitutes; any other
        error marks the job failed. Nothing is returned and nothing is raised.
        """
        if job_id in self._active:
            logging.warning(f"Analysis job {job_id} is already running, ignoring second run")
            return

        self._active.add(job_id)
        try:
            await self._run(job_id)
        finally:
            self._active.discard(job_id)
            self._scheduled.discard(job_id)

    async def _run(self, job_id: str) -> None:
        step = PipelineStep.INIT
        await self.bus.step_update(job_id, step, 5, ProgressStatus.RUNNING, "Loading analysis job")

        job = self.store.get(job_id)
        if job is None:
            logging.error(f"Analysis job not found: {job_id}")
            await self.bus.step_update(
                job_id, step, 0, ProgressStatus.ERROR, f"Analysis job {job_id} not found",
                {"error_type": "JobNotFoundError"},
            )
            return

        await self.bus.step_update(
            job_id, step, 5, ProgressStatus.COMPLETED, f"Analyzing '{job.metadata.title}'",
            {"video_id": job.video_id},
        )

        try:
            step = PipelineStep.SUBTITLES
            subtitles = await self._extract_subtitles(job)

            step = PipelineStep.SUMMARY
            segments = await self._summarize(job, subtitles)

            step = PipelineStep.SCREENSHOTS
            screenshot_urls = await self._generate_screenshots(job, segments)

            step = PipelineStep.FINALIZE
            await self._finalize(job, subtitles, segments, screenshot_urls)
        except Exception as e:
            logging.error(f"Error processing analysis {job_id} at {step.value}: {str(e)}")
            logging.error(traceback.format_exc())
            log_diagnostic_info({"job_id": job_id, "video_id": job.video_id, "step": step.value})
            await self._fail(job_id, step, e)

    async def _extract_subtitles(self, job: AnalysisJob) -> List[SubtitleLine]:
        step = PipelineStep.SUBTITLES
        await self.bus.step_update(
            job.id, step, 10, ProgressStatus.RUNNING, "Extracting subtitles"
        )

        details = {}
        try:
            subtitles = await asyncio.to_thread(self.subtitle_extractor.extract, job.video_id)
            message = f"Extracted {len(subtitles)} subtitle lines"
        except Exception as e:
            logging.warning(f"Subtitle extraction failed for {job.video_id}, using demo subtitles: {str(e)}")
            subtitles = demo_subtitles()
            message = "No subtitles available, using demo subtitles"
            details = {"is_demo_data": True, "fallback_reason": str(e), "error_type": error_kind(e)}

        self.store.update(job.id, subtitles=subtitles)
        details.update({
            "subtitle_count": len(subtitles),
            "subtitle_preview": truncate_text(" ".join(s.text for s in subtitles[:5]), 200),
        })
        await self.bus.step_update(job.id, step, 25, ProgressStatus.COMPLETED, message, details)
        return subtitles

    async def _summarize(self, job: AnalysisJob, subtitles: List[SubtitleLine]) -> List[SummarySegment]:
        step = PipelineStep.SUMMARY
        await self.bus.step_update(
            job.id, step, 30, ProgressStatus.RUNNING, "Generating AI topic summary",
            {"model": self.summarizer.model},
        )

        segments = await asyncio.to_thread(self.summarizer.summarize, job.metadata.title, subtitles)

        await self.bus.step_update(
            job.id, step, 60, ProgressStatus.COMPLETED, f"Identified {len(segments)} segments",
            {
                "model": self.summarizer.model,
                "segment_count": len(segments),
                "segments": [
                    {"title": s.title, "start": s.start_time, "end": s.end_time} for s in segments
                ],
            },
        )
        return segments

    async def _generate_screenshots(self, job: AnalysisJob, segments: List[SummarySegment]) -> List[str]:
        step = PipelineStep.SCREENSHOTS
        timestamps = [segment.start_time for segment in segments]
        await self.bus.step_update(
            job.id, step, 65, ProgressStatus.RUNNING,
            f"Generating {len(timestamps)} screenshots", {"timestamps": timestamps},
        )

        urls = await asyncio.to_thread(
            self.screenshot_generator.generate, job.video_id, timestamps, job.metadata.title
        )

        fallback_count = sum(1 for url in urls if not url.startswith("/screenshots/"))
        await self.bus.step_update(
            job.id, step, 90, ProgressStatus.COMPLETED, f"Generated {len(urls)} screenshots",
            {"screenshot_count": len(urls), "fallback_count": fallback_count},
        )
        return urls

    async def _finalize(
        self,
        job: AnalysisJob,
        subtitles: List[SubtitleLine],
        segments: List[SummarySegment],
        screenshot_urls: List[str],
    ) -> None:
        step = PipelineStep.FINALIZE
        await self.bus.step_update(job.id, step, 95, ProgressStatus.RUNNING, "Saving results")

        fallback = thumbnail_url(job.video_id, "mqdefault")
        final_segments = []
        for index, segment in enumerate(segments):
            url = screenshot_urls[index] if index < len(screenshot_urls) else ""
            final_segments.append(segment.model_copy(update={"screenshot_url": url or fallback}))

        self.store.update(job.id, segments=final_segments, status=AnalysisStatus.COMPLETED)
        logging.info(f"Video analysis completed: {job.id}")

        # The job is completed from here on; a failed publish must not turn it into an error
        try:
            await self.bus.step_update(
                job.id, step, 100, ProgressStatus.COMPLETED, "Analysis complete",
                {
                    "segment_count": len(final_segments),
                    "subtitle_count": len(subtitles),
                    "screenshot_count": len(screenshot_urls),
                },
            )
        except Exception as e:
            logging.error(f"Could not publish completion of analysis {job.id}: {str(e)}")

    async def _fail(self, job_id: str, step: PipelineStep, error: Exception) -> None:
        # Status first, so a failed publish cannot leave the job processing
        try:
            self.store.update(job_id, status=AnalysisStatus.FAILED)
        except Exception as e:
            logging.error(f"Could not mark analysis {job_id} as failed: {str(e)}")
        await self.bus.step_update(
            job_id, step, 0, ProgressStatus.ERROR, str(error),
            {"error_type": error_kind(error)},
        )


class AnalysisService:
    """Job submission: deduplicates by video id and schedules pipeline runs."""

    def __init__(self, store: AnalysisStore, resolver: MetadataResolver, pipeline: AnalysisPipeline):
        self.store = store
        self.resolver = resolver
        self.pipeline = pipeline
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, video_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(video_id, threading.Lock())

    def submit(self, url: str, force_regenerate: bool = False) -> Tuple[AnalysisJob, bool]:
        """
        Create or fetch the job for a URL.

        Submissions for the same video id are serialized, so concurrent requests
        for a new video share one job. A forced regeneration resets any job with
        no run scheduled or in progress here, including one left ``processing``
        by a previous process.

        Args:
            url: YouTube video URL
            force_regenerate: Reset and rerun an existing job

        Returns:
            The job record and whether the pipeline should be started for it

        Raises:
            InvalidUrlError: If the URL is not a YouTube video URL
            ExtractionError: If metadata for a new video cannot be resolved
        """
        video_id = self.resolver.validate(url)

        with self._lock_for(video_id):
            existing = self.store.get_by_video_id(video_id)
            if existing is not None:
                if not force_regenerate:
                    logging.info(f"Returning existing analysis {existing.id} for video {video_id}")
                    return existing, False
                if self.pipeline.is_running(existing.id):
                    logging.info(f"Analysis {existing.id} is still running, not regenerating")
                    return existing, False
                if not existing.is_terminal:
                    logging.warning(f"Analysis {existing.id} is processing with no active run, restarting it")
                job = self.store.reset_for_regeneration(existing.id)
            else:
                metadata = self.resolver.resolve(url)
                job = self.store.create(url, metadata)

            self.pipeline.mark_scheduled(job.id)
            return job, True
