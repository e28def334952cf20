"""
Launcher for the YouTube Video Analyzer API.

Checks the external pieces the pipeline relies on (FFmpeg, the Groq key, the
store backend) before handing over to uvicorn.
"""

import os
import shutil
import sys
import argparse
import uvicorn
from dotenv import load_dotenv

from video_analyzer.config import config


def preflight() -> list:
    """Problems that would degrade analyses, as human readable strings."""
    problems = []
    if shutil.which(config.FFMPEG_PATH) is None:
        problems.append(f"FFmpeg not found at '{config.FFMPEG_PATH}', screenshots will fall back to thumbnails")
    if not config.GROQ_API_KEY:
        problems.append("GROQ_API_KEY is not set, every summary step will fail")
    if config.STORE_BACKEND not in ("memory", "sql"):
        problems.append(f"Unknown STORE_BACKEND '{config.STORE_BACKEND}'")
    return problems


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description="YouTube Video Analyzer API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind the server to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--check", action="store_true", help="Only run the startup checks and exit")
    args = parser.parse_args()

    config.initialize()

    problems = preflight()
    for problem in problems:
        print(f"WARNING: {problem}")
    if args.check:
        print("Startup checks passed" if not problems else f"{len(problems)} startup problem(s)")
        sys.exit(1 if problems else 0)

    print(f"{config.APP_NAME} v{config.APP_VERSION} ({os.getenv('ENVIRONMENT', 'development')})")
    print(f"Data: {config.DATA_DIR} | store: {config.STORE_BACKEND} | public URL: {config.PUBLIC_URL}")

    # Single worker: progress subscribers and pipeline runs must share a process
    uvicorn.run(
        "video_analyzer.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1,
        log_level=getattr(config, "LOG_LEVEL", "INFO").lower(),
    )


if __name__ == "__main__":
    main()
