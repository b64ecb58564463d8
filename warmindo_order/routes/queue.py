"""
Queue Routes
============

- GET /queue: today's queue with paid/unpaid counts
- GET /queue/stream: the same, as server-sent events; a new event follows
  every order or payment change and every poll interval
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from ..deps import get_backend, get_queue_controller
from ..gateway import Backend
from ..schemas.queue import QueueOut
from ..services.queue import QueueController, queue_event_stream

logger = logging.getLogger(__name__)

queue_router = APIRouter(prefix="/queue", tags=["Queue"])


@queue_router.get("", response_model=QueueOut)
def current_queue(controller: QueueController = Depends(get_queue_controller)) -> QueueOut:
    return controller.load()


@queue_router.get("/stream")
async def stream_queue(
    request: Request,
    max_events: Optional[int] = Query(None, ge=1, description="Close after this many updates"),
    backend: Backend = Depends(get_backend),
):
    return StreamingResponse(
        queue_event_stream(backend, max_events=max_events, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
