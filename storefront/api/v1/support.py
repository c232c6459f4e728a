# ============================================================================
# FILE: storefront/api/v1/support.py
# Customer support chat endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from storefront.api.dependencies import (
    get_customer,
    get_customer_conversation,
    get_support_chat_service,
)
from storefront.config.database import get_db
from storefront.core.exceptions import ConversationClosedError
from storefront.models.customer import Customer
from storefront.models.support import SupportConversation
from storefront.schemas.support import (
    AttachmentMessageRequest,
    ConversationOut,
    CustomerMessageRequest,
    MessageOut,
    MessagesResponse,
    ReplyResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from storefront.services.support.support_chat_service import ReplyResult, SupportChatService

router = APIRouter(prefix="/customers/{customer_id}/support", tags=["support"])


def _customer_turn(turn, *args) -> ReplyResponse:
    try:
        result = turn(*args)
    except ConversationClosedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _reply_response(result)


def _reply_response(result: ReplyResult) -> ReplyResponse:
    return ReplyResponse(
        agent_type=result.agent_type,
        reply=result.reply,
        messages=[MessageOut.model_validate(message) for message in result.messages],
    )


@router.post("/conversations", response_model=StartConversationResponse)
def start_conversation(
        request: StartConversationRequest,
        customer: Customer = Depends(get_customer),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    """Open (or resume) the customer's active support conversation"""
    result = service.start_conversation(
        db,
        customer,
        requested_agent=request.requested_agent,
        channel=request.channel,
        context=request.context,
    )
    return StartConversationResponse(
        conversation=ConversationOut.model_validate(result.conversation),
        agent_type=result.agent_type,
        welcome=result.welcome,
    )


@router.get("/conversations/{conversation_uuid}/messages", response_model=MessagesResponse)
def list_messages(
        after_id: Optional[int] = Query(None, ge=0, description="Return messages after this id"),
        limit: int = Query(50, description="Page size, clamped to 1..100"),
        conversation: SupportConversation = Depends(get_customer_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    messages = service.get_messages(db, conversation, after_id=after_id, limit=limit)
    service.mark_messages_read_by_customer(db, conversation)
    return MessagesResponse(
        conversation_uuid=conversation.uuid,
        messages=[MessageOut.model_validate(message) for message in messages],
    )


@router.post("/conversations/{conversation_uuid}/messages", response_model=ReplyResponse)
def send_message(
        request: CustomerMessageRequest,
        customer: Customer = Depends(get_customer),
        conversation: SupportConversation = Depends(get_customer_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    return _customer_turn(service.reply_to_customer, db, conversation, customer, request.message)


@router.post("/conversations/{conversation_uuid}/handoff", response_model=ReplyResponse)
def forward_to_human(
        request: CustomerMessageRequest,
        customer: Customer = Depends(get_customer),
        conversation: SupportConversation = Depends(get_customer_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    return _customer_turn(service.forward_to_human, db, conversation, customer, request.message)


@router.post("/conversations/{conversation_uuid}/attachments", response_model=ReplyResponse)
def send_attachment(
        request: AttachmentMessageRequest,
        customer: Customer = Depends(get_customer),
        conversation: SupportConversation = Depends(get_customer_conversation),
        service: SupportChatService = Depends(get_support_chat_service),
        db: Session = Depends(get_db)
):
    return _customer_turn(
        service.forward_attachment_to_human, db, conversation, customer, request.attachment, request.caption
    )
