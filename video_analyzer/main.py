"""
Command line entry point for the YouTube Video Analyzer.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from video_analyzer.config import config
from video_analyzer.core.progress import QueueChannel
from video_analyzer.db.store import InMemoryAnalysisStore
from video_analyzer.models.schemas import AnalysisJob, AnalysisStatus
from video_analyzer.services import build_services
from video_analyzer.utils.error_handling import VideoAnalyzerError
from video_analyzer.utils.helpers import format_timestamp, save_json
from video_analyzer.utils.logger import logging


def save_analysis(job: AnalysisJob, output_file: Optional[str] = None) -> Path:
    """Save the analysis to a JSON file."""
    if output_file is None:
        output_dir = Path(config.SUMMARIES_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / f"{job.video_id}_analysis.json"
    else:
        output_file = Path(output_file)

    save_json(job.model_dump(mode="json"), str(output_file))
    logging.info(f"Analysis saved to: {output_file}")
    return output_file


async def _print_progress(channel: QueueChannel) -> None:
    while True:
        message = await channel.queue.get()
        data = message["data"]
        print(f"[{data['progress']:>3}%] {data['step']}: {data['message']}")


async def analyze_youtube_video(url: str, force_regenerate: bool = False) -> Optional[AnalysisJob]:
    """
    Run the whole analysis for one URL in this process, printing progress.

    Args:
        url: YouTube video URL
        force_regenerate: Rerun even if an analysis exists (only relevant for the sql store)

    Returns:
        The final job record
    """
    store = InMemoryAnalysisStore() if config.STORE_BACKEND == "memory" else None
    services = build_services(config, store=store)

    job, should_run = services.analysis.submit(url, force_regenerate)
    if not should_run:
        return job

    channel = QueueChannel()
    services.bus.subscribe(job.id, channel)
    printer = asyncio.create_task(_print_progress(channel))
    try:
        await services.pipeline.process(job.id)
        # let the printer drain what was queued
        while not channel.queue.empty():
            await asyncio.sleep(0)
    finally:
        channel.close()
        services.bus.unsubscribe(channel)
        printer.cancel()
        try:
            await printer
        except asyncio.CancelledError:
            pass

    return services.store.get(job.id)


def main():
    """Main function to run the application from command line."""
    parser = argparse.ArgumentParser(description="YouTube Video Analyzer")
    parser.add_argument("url", help="YouTube video URL")
    parser.add_argument("--force", action="store_true", help="Regenerate an existing analysis")
    parser.add_argument("--output", help="Output file path for the analysis JSON")

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()

    try:
        job = asyncio.run(analyze_youtube_video(args.url, args.force))
    except VideoAnalyzerError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

    if job is None:
        print("Error: analysis record disappeared", file=sys.stderr)
        sys.exit(1)

    save_analysis(job, args.output)

    print("\n" + "=" * 80)
    print(f"Analysis of '{job.metadata.title}' by {job.metadata.channel} [{job.status.value}]")
    print("=" * 80)
    for segment in job.segments:
        print(f"{format_timestamp(segment.start_time)} - {format_timestamp(segment.end_time)}  {segment.title}")
        print(f"    {segment.ai_summary}")
        print(f"    {segment.screenshot_url}")
    print("=" * 80)

    if job.status == AnalysisStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
