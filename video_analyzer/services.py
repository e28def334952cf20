"""
Construction of the application's long-lived components.

Everything the pipeline needs is built here and handed around explicitly, so
the API app and the command line each own one set for their lifetime.
"""

from dataclasses import dataclass
from typing import Optional

from video_analyzer.core.metadata import MetadataResolver
from video_analyzer.core.pipeline import AnalysisPipeline, AnalysisService
from video_analyzer.core.progress import ProgressBus
from video_analyzer.core.screenshots import ScreenshotGenerator
from video_analyzer.core.subtitles import SubtitleExtractor
from video_analyzer.core.summarizer import TranscriptSummarizer
from video_analyzer.core.video_cache import VideoCache
from video_analyzer.db.store import AnalysisStore, create_store
from video_analyzer.models.schemas import SummaryConfig


@dataclass
class Services:
    store: AnalysisStore
    bus: ProgressBus
    resolver: MetadataResolver
    video_cache: VideoCache
    screenshot_generator: ScreenshotGenerator
    pipeline: AnalysisPipeline
    analysis: AnalysisService


def build_services(config, store: Optional[AnalysisStore] = None) -> Services:
    """
    Build all components from a configuration class.

    Args:
        config: Configuration class (see ``video_analyzer.config``)
        store: Optional store overriding ``config.STORE_BACKEND``
    """
    store = store or create_store(config.STORE_BACKEND, config.DATABASE_URL)
    bus = ProgressBus()
    resolver = MetadataResolver()
    video_cache = VideoCache(config.CACHE_DIR)
    screenshot_generator = ScreenshotGenerator(
        video_cache,
        config.SCREENSHOTS_DIR,
        ffmpeg_path=config.FFMPEG_PATH,
        width=config.SCREENSHOT_WIDTH,
        height=config.SCREENSHOT_HEIGHT,
        timeout=config.SCREENSHOT_TIMEOUT,
    )
    summarizer = TranscriptSummarizer(
        SummaryConfig(
            model=config.DEFAULT_SUMMARY_MODEL,
            provider=config.LLM_PROVIDER,
            temperature=config.SUMMARY_TEMPERATURE,
            max_tokens=config.SUMMARY_MAX_TOKENS,
            language=config.SUMMARY_LANGUAGE,
        ),
        api_key=config.GROQ_API_KEY,
    )
    subtitle_extractor = SubtitleExtractor(
        config.SUBTITLE_PRIMARY_LANGUAGES, config.SUBTITLE_SECONDARY_LANGUAGES
    )
    pipeline = AnalysisPipeline(store, bus, subtitle_extractor, summarizer, screenshot_generator)
    return Services(
        store=store,
        bus=bus,
        resolver=resolver,
        video_cache=video_cache,
        screenshot_generator=screenshot_generator,
        pipeline=pipeline,
        analysis=AnalysisService(store, resolver, pipeline),
    )
