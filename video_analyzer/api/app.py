"""
FastAPI application for the YouTube Video Analyzer.
"""

import asyncio
import time
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from video_analyzer.api.routes import router, ws_router
from video_analyzer.config import config
from video_analyzer.core.screenshots import SCREENSHOT_URL_PREFIX
from video_analyzer.services import Services, build_services
from video_analyzer.utils.logger import logging


async def cache_maintenance_loop(services: Services, interval: float) -> None:
    """Evict stale cached videos every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            deleted = await asyncio.to_thread(
                services.video_cache.evict, config.CACHE_MAX_AGE_HOURS, config.CACHE_MAX_SIZE_GB
            )
            logging.info(f"Scheduled cache cleanup removed {deleted} videos")
        except Exception as e:
            logging.error(f"Scheduled cache cleanup failed: {str(e)}")
            logging.error(traceback.format_exc())


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        services: Pre-built components; built from config on startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize components on application startup."""
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(config)
        logging.info(
            f"{config.APP_NAME} started (store={config.STORE_BACKEND}, "
            f"ffmpeg available={app.state.services.screenshot_generator.ffmpeg_available()})"
        )

        maintenance = asyncio.create_task(
            cache_maintenance_loop(app.state.services, config.CACHE_CLEANUP_INTERVAL_SECONDS)
        )
        try:
            yield
        finally:
            maintenance.cancel()
            try:
                await maintenance
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="An API for analyzing YouTube videos into illustrated, timestamped topic summaries",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Middleware to add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions."""
        logging.error(f"Unhandled error on {request.url.path}: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"detail": f"An unexpected error occurred: {str(exc)}"},
        )

    screenshots_dir = services.screenshot_generator.screenshots_dir if services else config.SCREENSHOTS_DIR
    app.mount(
        SCREENSHOT_URL_PREFIX,
        StaticFiles(directory=str(screenshots_dir), check_dir=False),
        name="screenshots",
    )

    app.include_router(router)
    app.include_router(ws_router)

    @app.get("/")
    async def root():
        """Root endpoint returning basic API information."""
        return {
            "name": config.APP_NAME,
            "version": config.APP_VERSION,
            "description": "YouTube Video Analyzer API",
        }

    return app


app = create_app()
