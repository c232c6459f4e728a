# ============================================================================
# FILE: storefront/api/v1/admin_support.py
# Staff support desk endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from storefront.api.dependencies import (
    get_conversation,
    get_support_chat_service,
    require_support_staff,
)
from storefront.config.database import get_db
from storefront.models.support import SupportConversation
from storefront.schemas.support import (
    AdminActionRequest,
    AdminReplyRequest,
    ConversationOut,
    MessageOut,
    MessagesResponse,
)
from storefront.services.support.support_chat_service import SupportChatService

router = APIRouter(prefix="/admin/support", tags=["admin-support"])


@router.get("/conversations/{conversation_uuid}/messages", response_model=MessagesResponse)
def list_messages(
        admin_id: int = Query(...),
        after_id: Optional[int] = Query(None, ge=0),
        limit: int = Query(50),
        conversation: SupportConversation = Depends(get_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    require_support_staff(db, admin_id)
    messages = service.get_messages(db, conversation, after_id=after_id, limit=limit)
    service.mark_messages_read_by_admin(db, conversation)
    return MessagesResponse(
        conversation_uuid=conversation.uuid,
        messages=[MessageOut.model_validate(message) for message in messages],
    )


@router.post("/conversations/{conversation_uuid}/replies", response_model=MessageOut)
def reply(
        request: AdminReplyRequest,
        conversation: SupportConversation = Depends(get_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    """Agent reply or internal note, optionally with an attachment"""
    admin = require_support_staff(db, request.admin_id)

    if request.attachment is not None:
        message = service.add_admin_attachment_reply(
            db, conversation, admin, request.attachment, request.body, request.internal_note
        )
    elif request.body and request.body.strip():
        message = service.add_admin_reply(db, conversation, admin, request.body, request.internal_note)
    else:
        raise HTTPException(status_code=422, detail="Reply needs a body or an attachment")

    return MessageOut.model_validate(message)


@router.post("/conversations/{conversation_uuid}/assign", response_model=ConversationOut)
def assign(
        request: AdminActionRequest,
        conversation: SupportConversation = Depends(get_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    admin = require_support_staff(db, request.admin_id)
    return ConversationOut.model_validate(service.assign_to_admin(db, conversation, admin))


@router.post("/conversations/{conversation_uuid}/summary", response_model=MessageOut)
def summarize(
        request: AdminActionRequest,
        conversation: SupportConversation = Depends(get_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    """Add an AI-generated internal summary note"""
    admin = require_support_staff(db, request.admin_id)
    return MessageOut.model_validate(service.add_ai_summary_internal_note(db, conversation, admin))


@router.post("/conversations/{conversation_uuid}/resolve", response_model=ConversationOut)
def resolve(
        request: AdminActionRequest,
        conversation: SupportConversation = Depends(get_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    require_support_staff(db, request.admin_id)
    return ConversationOut.model_validate(service.mark_resolved(db, conversation))
