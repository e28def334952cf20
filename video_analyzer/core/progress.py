"""
Publish/subscribe channel for pipeline progress, keyed by job id.

Events fan out to every channel subscribed to the job at publish time.
Nothing is buffered: a channel that subscribes late only sees later events.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol, Set

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from video_analyzer.models.schemas import ProgressEvent, ProgressStatus
from video_analyzer.utils.error_handling import ChannelClosedError
from video_analyzer.utils.logger import logging


class ProgressChannel(Protocol):
    """Anything that can receive progress messages."""

    async def send(self, message: Dict[str, Any]) -> None:
        """Deliver one message; raise ChannelClosedError once closed."""


class WebSocketChannel:
    """Progress channel backed by a FastAPI websocket connection."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: Dict[str, Any]) -> None:
        if self.websocket.application_state != WebSocketState.CONNECTED:
            raise ChannelClosedError("websocket is closed")
        try:
            await self.websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            raise ChannelClosedError(str(e)) from e


class QueueChannel:
    """Progress channel backed by an asyncio queue, for in-process consumers."""

    def __init__(self, maxsize: int = 0):
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            raise ChannelClosedError("queue channel is closed")
        await self.queue.put(message)

    def close(self) -> None:
        self.closed = True


class ProgressBus:
    """Fan-out of progress events to the channels subscribed to each job."""

    def __init__(self):
        self._channels: Dict[str, Set[ProgressChannel]] = {}

    def subscribe(self, job_id: str, channel: ProgressChannel) -> None:
        """Deliver future events for ``job_id`` to ``channel``."""
        self._channels.setdefault(job_id, set()).add(channel)
        logging.info(f"Progress subscriber added for job {job_id}")

    def unsubscribe(self, channel: ProgressChannel, job_id: Optional[str] = None) -> None:
        """Remove ``channel`` from one job, or from every job when no id is given."""
        job_ids = [job_id] if job_id is not None else list(self._channels)
        for key in job_ids:
            channels = self._channels.get(key)
            if not channels:
                continue
            channels.discard(channel)
            if not channels:
                del self._channels[key]

    def subscriber_count(self, job_id: str) -> int:
        return len(self._channels.get(job_id, ()))

    async def publish(self, event: ProgressEvent) -> None:
        """Send ``event`` to every channel currently subscribed to its job."""
        channels = list(self._channels.get(event.job_id, ()))
        if not channels:
            return

        message = event.to_message()
        for channel in channels:
            try:
                await channel.send(message)
            except ChannelClosedError:
                logging.debug(f"Dropping closed progress channel for job {event.job_id}")
                self.unsubscribe(channel, event.job_id)

        logging.debug(f"Published progress: {event.step} - {event.progress}% ({event.job_id})")

    async def step_update(
        self,
        job_id: str,
        step: str,
        progress: int,
        status: ProgressStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> ProgressEvent:
        """Build and publish a progress event; returns the event."""
        event = ProgressEvent(
            job_id=job_id,
            step=getattr(step, "value", step),
            progress=progress,
            status=status,
            message=message,
            details=details,
        )
        await self.publish(event)
        return event
