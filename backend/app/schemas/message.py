# app/schemas/message.py
"""
Pydantic schemas for dashboard messaging and push-channel administration.
"""
from typing import Any, Optional
from pydantic import BaseModel, Field

class SendMessageIn(BaseModel):
    """
    Request body for both parent and childminder send endpoints.
    """
    receiverId: str  # User id of the conversation partner
    content: str  # Message text (must not be blank after trimming)

class AnnouncementIn(BaseModel):
    """
    Admin broadcast over the push channels.
    """
    # Event name written in the frame; a line break would split the frame
    event: str = Field(default="announcement", min_length=1, max_length=64, pattern=r"^[^\r\n]+$")
    data: Any  # Any JSON payload
    groupId: Optional[str] = None  # Only channels opened with this partnerId; empty means everyone
