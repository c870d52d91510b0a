# app/api/v1/routers/events.py
import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from app.config import settings
from app.api.v1.deps import get_current_user, get_connection_registry
from app.core.sse import ConnectionRegistry, QueueSink, encode_event
from app.models.user import User

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/messages", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Stop nginx from buffering the stream
}

async def event_stream(
    registry: ConnectionRegistry,
    user_id: str,
    group_id: str | None = None,
    ping_interval: float = 30.0,
    queue_size: int = 0,
) -> AsyncIterator[bytes]:
    """
    Body of one event-stream response.

    Registers a fresh sink for the user when the response starts, replacing
    (and closing) any stream the user already had open. Frames pushed through
    the registry are relayed as they arrive; a ping frame is written after
    ping_interval seconds of silence. The sink is unregistered when the client
    goes away or the sink is closed by a newer stream.
    """
    existing = registry.get(user_id)
    if existing is not None:
        existing.sink.close()
        registry.unregister(user_id)

    sink = QueueSink(maxsize=queue_size)
    registry.register(user_id, sink, group_id=group_id)
    logger.info("[sse] stream opened user=%s group=%s (open=%d)", user_id, group_id, registry.count())
    try:
        yield encode_event("connected", {"connected": True})
        while True:
            try:
                frame = await asyncio.wait_for(sink.get(), timeout=ping_interval)
            except asyncio.TimeoutError:
                if sink.closed:
                    break
                yield encode_event("ping", {})
                continue
            if frame is None:
                break
            yield frame
    finally:
        registry.unregister(user_id, sink=sink)
        sink.close()
        logger.info("[sse] stream closed user=%s (open=%d)", user_id, registry.count())

@router.get("/sse")
async def open_event_stream(
    partnerId: str | None = Query(default=None),
    user: User = Depends(get_current_user),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    Open the authenticated user's push channel.

    Args:
        partnerId: Optional conversation partner; the channel then also
            receives broadcasts targeted at that group
        user: Authenticated user (from dependency)
        registry: Push-channel registry (from dependency)

    Returns:
        StreamingResponse: text/event-stream; the first frame is
        "event: connected", later frames are pushed by other handlers

    Raises:
        HTTPException (401): If user is not authenticated
    """
    stream = event_stream(
        registry,
        str(user.id),
        group_id=partnerId or None,
        ping_interval=settings.sse_ping_interval,
        queue_size=settings.sse_queue_size,
    )
    return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)
