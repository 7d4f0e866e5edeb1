# models/message.py
from pydantic import BaseModel, Field
from typing import Optional


class NormalizedMessage(BaseModel):
    """Inbound message as delivered by a channel adapter."""

    identity: str = Field(..., description="Channel address of the sender, e.g. a phone number")
    text: str = Field(default="", description="Message body (empty for pure media messages)")
    attachment_ref: Optional[str] = Field(None, description="Channel media id for audio/images")
    channel_id: Optional[str] = Field(None, description="Business number the message arrived on")


class OutboundReply(BaseModel):
    identity: str
    text: str
    channel_id: Optional[str] = None
