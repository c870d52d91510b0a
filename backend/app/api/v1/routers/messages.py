# app/api/v1/routers/messages.py
import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from tortoise.expressions import Q

from app.api.v1.deps import get_current_user, get_connection_registry, require_role
from app.core.sse import ConnectionRegistry
from app.models.message import Message
from app.models.user import User
from app.schemas.message import SendMessageIn

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/dashboard", tags=["messages"])

def _parse_id(raw: str, code: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=code)

def format_message(m: Message, sender: User, viewer_id) -> dict:
    """
    Message payload shared by responses and "new-message" events.
    isCurrentUser is relative to viewer_id, so the sender's and receiver's
    copies of the same message differ only in that flag.
    """
    return {
        "id": str(m.id),
        "content": m.content,
        "createdAt": m.created_at.isoformat(),
        "read": m.read,
        "receiverId": str(m.receiver_id),
        "sender": {
            "id": str(sender.id),
            "name": sender.name or sender.email,
            "image": sender.image,
            "isCurrentUser": str(sender.id) == str(viewer_id),
        },
    }

async def _send(body: SendMessageIn, sender: User, receiver_role: str, registry: ConnectionRegistry) -> dict:
    content = (body.content or "").strip()
    if not body.receiverId or not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail={"code": "BAD_REQUEST", "message": "Receiver ID and content are required"})

    receiver = await User.get_or_none(id=_parse_id(body.receiverId, "RECEIVER_NOT_FOUND"))
    if not receiver:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="RECEIVER_NOT_FOUND")
    if receiver.role != receiver_role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail={"code": "INVALID_RECEIVER", "message": f"Receiver must be a {receiver_role}"})

    m = await Message.create(sender=sender, receiver=receiver, content=content)

    # Receiver gets the message; the sender's own stream gets it too so other open devices stay in sync
    delivered_to_receiver = await registry.send_to(str(receiver.id), "new-message", format_message(m, sender, receiver.id))
    await registry.send_to(str(sender.id), "new-message", format_message(m, sender, sender.id))
    logger.debug("[messages] %s -> %s: %s", sender.id, receiver.id, delivered_to_receiver.value)

    return {"success": True, "data": {"message": format_message(m, sender, sender.id)}}

@router.post("/parent/messages/send", status_code=status.HTTP_201_CREATED)
async def parent_send_message(
    body: SendMessageIn,
    user: User = Depends(require_role("parent")),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    Send a message from a parent to a childminder.

    The message is stored, then pushed as a "new-message" event to the
    childminder's and the parent's open streams. Push delivery is best effort:
    offline users simply fetch the conversation later.

    Raises:
        HTTPException (400): Blank content, or receiver is not a childminder
        HTTPException (403): Caller is not a parent
        HTTPException (404): Receiver not found
    """
    return await _send(body, user, "childminder", registry)

@router.post("/childminder/messages/send", status_code=status.HTTP_201_CREATED)
async def childminder_send_message(
    body: SendMessageIn,
    user: User = Depends(require_role("childminder")),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    Send a message from a childminder to a parent. Mirror of parent_send_message.
    """
    return await _send(body, user, "parent", registry)

@router.get("/messages/conversation")
async def get_conversation(
    partnerId: str = Query(...),
    user: User = Depends(require_role("parent", "childminder")),
    limit: int = Query(100, ge=1, le=500),
):
    """
    Messages exchanged between the caller and partnerId, oldest first.
    """
    partner_id = _parse_id(partnerId, "PARTNER_NOT_FOUND")
    rows = await (
        Message.filter(
            Q(sender_id=user.id, receiver_id=partner_id) | Q(sender_id=partner_id, receiver_id=user.id)
        )
        .order_by("created_at")
        .limit(limit)
        .prefetch_related("sender")
    )
    items = [format_message(m, m.sender, user.id) for m in rows]
    return {"success": True, "data": {"items": items, "total": len(items)}}

@router.post("/messages/{message_id}/read")
async def mark_message_read(
    message_id: str,
    user: User = Depends(get_current_user),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """
    Mark a received message as read and tell the sender via a
    "message-read" event.

    Raises:
        HTTPException (404): Message not found or not addressed to the caller
    """
    m = await Message.get_or_none(id=_parse_id(message_id, "MESSAGE_NOT_FOUND"), receiver_id=user.id)
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="MESSAGE_NOT_FOUND")
    if not m.read:
        m.read = True
        await m.save()
        await registry.send_to(
            str(m.sender_id),
            "message-read",
            {"messageId": str(m.id), "readerId": str(user.id), "readAt": m.updated_at},
        )
    return {"success": True, "data": {"id": str(m.id), "read": True}}
