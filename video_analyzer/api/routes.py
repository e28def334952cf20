"""
API routes for the video analyzer application.
"""

import os
from typing import List, Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    Header,
    HTTPException,
    Path,
    Request,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.responses import StreamingResponse

from video_analyzer.api.schemas import (
    AnalyzeRequest,
    CacheStatsResponse,
    CacheStatusResponse,
    CleanupResponse,
)
from video_analyzer.config import config
from video_analyzer.core.progress import WebSocketChannel
from video_analyzer.models.schemas import AnalysisJob, DownloadStatus
from video_analyzer.services import Services
from video_analyzer.utils.error_handling import ExtractionError, InvalidUrlError
from video_analyzer.utils.helpers import parse_range_header
from video_analyzer.utils.logger import logging

router = APIRouter(prefix="/api/v1", tags=["videos"])
ws_router = APIRouter(tags=["progress"])

CHUNK_SIZE = 1024 * 1024


def get_services(request: Request) -> Services:
    """Components owned by the running app."""
    return request.app.state.services


@router.post("/videos/analyze", response_model=AnalysisJob)
def analyze_video(
    request: AnalyzeRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """
    Start analyzing a YouTube video.

    - If the video has been analyzed before, returns the existing job
    - If force_regenerate is True and the job is finished, resets and reruns it
    - Processing runs in the background; poll the job or subscribe to progress
    """
    try:
        job, should_run = services.analysis.submit(request.url, request.force_regenerate)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExtractionError as e:
        logging.error(f"Error starting analysis: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))

    if should_run:
        background_tasks.add_task(services.pipeline.process, job.id)
    return job


@router.get("/videos/analyze/{job_id}", response_model=AnalysisJob)
def get_analysis(
    job_id: str = Path(..., description="Analysis job ID"),
    services: Services = Depends(get_services),
):
    """Get the current state of an analysis job."""
    job = services.store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return job


@router.get("/videos", response_model=List[AnalysisJob])
def list_analyses(services: Services = Depends(get_services)):
    """Get all analysis jobs."""
    return services.store.list_all()


@router.get("/videos/download/{video_id}")
def download_video(
    video_id: str = Path(..., description="YouTube video ID"),
    range_header: Optional[str] = Header(None, alias="Range"),
    services: Services = Depends(get_services),
):
    """Stream a cached video, honouring single byte ranges."""
    entry = services.video_cache.touch(video_id)
    if entry is None or not os.path.exists(entry.local_path):
        raise HTTPException(status_code=404, detail="Video not cached")

    file_size = os.path.getsize(entry.local_path)
    try:
        byte_range = parse_range_header(range_header, file_size)
    except ValueError:
        raise HTTPException(
            status_code=416,
            detail="Requested range not satisfiable",
            headers={"Content-Range": f"bytes */{file_size}"},
        )

    start, end = byte_range if byte_range else (0, file_size - 1)
    headers = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(end - start + 1),
        "Content-Disposition": f'attachment; filename="{entry.file_name}"',
    }
    status_code = 200
    if byte_range:
        status_code = 206
        headers["Content-Range"] = f"bytes {start}-{end}/{file_size}"

    def iter_file():
        with open(entry.local_path, "rb") as f:
            f.seek(start)
            remaining = end - start + 1
            while remaining > 0:
                chunk = f.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk

    return StreamingResponse(iter_file(), status_code=status_code, media_type="video/mp4", headers=headers)


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(services: Services = Depends(get_services)):
    """Aggregate video cache statistics."""
    return CacheStatsResponse(**services.video_cache.stats())


@router.post("/cache/cleanup", response_model=CleanupResponse)
def cleanup_cache(services: Services = Depends(get_services)):
    """Run the cache eviction policy now."""
    deleted = services.video_cache.evict(config.CACHE_MAX_AGE_HOURS, config.CACHE_MAX_SIZE_GB)
    return CleanupResponse(deleted=deleted)


@router.get("/cache/{video_id}", response_model=CacheStatusResponse)
def cache_status(
    video_id: str = Path(..., description="YouTube video ID"),
    services: Services = Depends(get_services),
):
    """Cache state of one video."""
    entry = services.video_cache.get_entry(video_id)
    if entry is None:
        return CacheStatusResponse(video_id=video_id, cached=False)
    return CacheStatusResponse(
        video_id=video_id,
        cached=entry.download_status == DownloadStatus.COMPLETED,
        status=entry.download_status,
        file_size=entry.file_size,
        file_name=entry.file_name,
        downloaded_at=entry.downloaded_at,
        last_accessed_at=entry.last_accessed_at,
        downloaded_bytes=entry.downloaded_bytes,
        total_bytes=entry.total_bytes,
    )


@router.delete("/cache/{video_id}")
def delete_cached_video(
    video_id: str = Path(..., description="YouTube video ID"),
    services: Services = Depends(get_services),
):
    """Remove a video from the cache."""
    if not services.video_cache.delete(video_id):
        raise HTTPException(status_code=404, detail="Video not cached or still downloading")
    return {"deleted": video_id}


@ws_router.websocket("/ws/progress")
async def progress_socket(websocket: WebSocket):
    """
    Live progress feed.

    The client sends ``{"type": "subscribe", "job_id": "..."}`` for each job it
    wants to follow and then receives ``{"type": "progress", "data": {...}}``
    messages until it disconnects.
    """
    services: Services = websocket.app.state.services
    await websocket.accept()
    channel = WebSocketChannel(websocket)
    logging.info("Progress websocket connected")

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except (ValueError, KeyError):
                # Binary frames carry no text payload
                logging.warning("Ignoring malformed progress websocket message")
                continue

            job_id = None
            if isinstance(data, dict) and data.get("type") == "subscribe":
                job_id = data.get("job_id") or data.get("jobId") or data.get("analysisId")
            if job_id:
                services.bus.subscribe(job_id, channel)
                await websocket.send_json({"type": "subscribed", "job_id": job_id})
    except WebSocketDisconnect:
        logging.info("Progress websocket disconnected")
    finally:
        services.bus.unsubscribe(channel)
