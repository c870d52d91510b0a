# app/api/v1/routers/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.api.v1.deps import require_admin, get_connection_registry
from app.core.sse import ConnectionRegistry, DeliveryResult
from app.models.user import User
from app.schemas.message import AnnouncementIn

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/admin", tags=["admin"])


# ------------------------------------------------------------------------------
# Push channel diagnostics
# ------------------------------------------------------------------------------
@router.get("/sse/connections")
async def list_connections(
    admin: User = Depends(require_admin),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    List the users that currently have an open event stream.

    Returns:
        dict: Response containing:
            - success: bool (always True)
            - data: dict with:
                - count: number of open streams
                - recipients: list of {userId, groupId, connectedAt}
    """
    recipients = []
    for user_id in registry.list_recipients():
        conn = registry.get(user_id)
        if conn is None:
            continue
        recipients.append({
            "userId": user_id,
            "groupId": conn.group_id,
            "connectedAt": conn.connected_at.isoformat() + "Z",
        })
    return {"success": True, "data": {"count": registry.count(), "recipients": recipients}}


@router.post("/sse/announcements")
async def broadcast_announcement(
    body: AnnouncementIn,
    admin: User = Depends(require_admin),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    Push an event to every open stream except the admin's own.

    Args:
        body: event name, JSON payload and optional groupId filter

    Returns:
        dict: Response containing:
            - success: bool (always True)
            - data: dict with attempted / delivered / evicted counts
    """
    results = await registry.broadcast(
        body.event,
        body.data,
        exclude_recipient_id=str(admin.id),
        target_group_id=body.groupId,
    )
    delivered = sum(1 for r in results.values() if r is DeliveryResult.DELIVERED)
    evicted = sum(1 for r in results.values() if r is DeliveryResult.EVICTED)
    logger.info("[admin] announcement %r: delivered=%d evicted=%d", body.event, delivered, evicted)
    return {"success": True, "data": {"attempted": len(results), "delivered": delivered, "evicted": evicted}}
