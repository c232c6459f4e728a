# storefront/schemas/support.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class AttachmentIn(BaseModel):
    """Already-stored attachment descriptor"""
    url: str = Field(..., description="Public URL of the stored file")
    path: Optional[str] = Field(None, description="Storage path")
    mime: str = Field(..., description="MIME type, e.g. image/jpeg")
    size: Optional[int] = Field(None, description="Size in bytes")
    name: Optional[str] = Field(None, description="Original file name")
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_image(self) -> bool:
        return self.mime.lower().startswith("image/")

    def to_metadata(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        data["type"] = "image" if self.is_image else "file"
        return data


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    customer_id: int
    channel: Optional[str] = None
    status: str
    requested_agent: str
    active_agent: str
    ai_enabled: bool
    handoff_requested: bool
    assigned_user_id: Optional[int] = None
    topic: Optional[str] = None
    tags: Optional[List[str]] = None
    last_message_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    sender_type: str
    message_type: str
    body: str
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="message_metadata")
    is_internal_note: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class StartConversationRequest(BaseModel):
    requested_agent: str = Field("auto", description="auto, ai or human")
    channel: str = Field("mobile")
    context: Dict[str, Any] = Field(default_factory=dict)


class StartConversationResponse(BaseModel):
    conversation: ConversationOut
    agent_type: str
    welcome: str


class CustomerMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class AttachmentMessageRequest(BaseModel):
    attachment: AttachmentIn
    caption: Optional[str] = Field(None, max_length=4000)


class AdminReplyRequest(BaseModel):
    admin_id: int
    body: Optional[str] = Field(None, max_length=4000)
    attachment: Optional[AttachmentIn] = None
    internal_note: bool = False


class ReplyResponse(BaseModel):
    agent_type: str
    reply: str
    messages: List[MessageOut]


class MessagesResponse(BaseModel):
    conversation_uuid: str
    messages: List[MessageOut]


class AdminActionRequest(BaseModel):
    admin_id: int
