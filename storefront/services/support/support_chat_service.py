# storefront/services/support/support_chat_service.py
"""
Support chat orchestration.

Decides whether the AI assistant or a human agent answers each customer
message, keeps conversation state in sync and persists every turn.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.exceptions import ConversationClosedError
from storefront.models.customer import Customer, User
from storefront.models.support import (
    AgentType,
    ConversationStatus,
    MessageType,
    RequestedAgent,
    SenderType,
    SupportConversation,
    SupportMessage,
)
from storefront.schemas.support import AttachmentIn
from storefront.services.ai.deepseek_client import (
    ChatResult,
    REPLY_TEMPERATURE,
    SUMMARY_TEMPERATURE,
)
from storefront.services.notification.notification_service import NotificationService
from storefront.services.notification.realtime import NullBroadcaster
from storefront.services.support.config import SupportChatConfig
from storefront.services.support.locks import (
    ConversationLockRegistry,
    conversation_scope,
    customer_scope,
)
from storefront.services.support.order_context_service import (
    OrderContextService,
    generic_keyword_reply,
)

logger = logging.getLogger(__name__)

HANDOFF_KEYWORDS = ("human", "agent", "representative", "real person", "support team")

HISTORY_LIMIT = 8
SUMMARY_HISTORY_LIMIT = 20
SUMMARY_EXCERPT_LENGTH = 220
MAX_PAGE_SIZE = 100

NEW_CONVERSATION_REASON = "New support conversation is waiting for an agent."
HUMAN_REQUESTED_REASON = "Customer requested a human agent."
AI_UNAVAILABLE_REASON = "AI unavailable or fallback required."

HUMAN_WELCOME = "Thanks for contacting support. A human agent will join this conversation shortly."
AI_WELCOME = (
    "Hi, I am your AI support assistant. Tell me what you need, "
    "and I can help or hand off to a human agent."
)
AI_ONLY_WELCOME = "Hi, I am your AI support assistant. Tell me what you need and I will help you right away."

DEFAULT_HANDOFF_ACK = "I am handing this conversation to a human agent now. You will get a follow-up shortly."
FALLBACK_HANDOFF_ACK = "Thanks for your message. A support agent will review this shortly."
AI_ONLY_FALLBACK_REPLY = (
    "Thanks for your message. Please share your order number and a few details "
    "so I can check this for you."
)
EMPTY_AI_REPLY = "I did not catch that. Could you share more details or your order number so I can help?"
RESOLVED_NOTICE = (
    "This support session is now resolved. If you need more help, "
    "please start a new support session."
)

SYSTEM_PROMPT = (
    "You are an ecommerce support assistant. Be concise, practical, and polite. "
    "Use the order context provided to answer order, tracking and payment questions. "
    "If an issue requires human action (refund approval, payment dispute, account security), "
    "explicitly say you are handing off to a human agent."
)
AI_ONLY_SYSTEM_PROMPT = (
    "You are an ecommerce support assistant and the only support channel for this store. "
    "Be concise, practical, and polite. Use the order context provided to answer order, "
    "tracking and payment questions. Never offer, promise or mention a transfer to a human agent. "
    "If you cannot resolve something, ask for the order number and the details you need."
)
SUMMARY_SYSTEM_PROMPT = (
    "Summarize support conversations for internal admin notes. "
    "Keep concise and practical. Output plain text only."
)

CHAT_ROLE_BY_SENDER = {
    SenderType.CUSTOMER: "user",
    SenderType.AGENT: "assistant",
    SenderType.AI: "assistant",
    SenderType.SYSTEM: "assistant",
}

TRANSCRIPT_LABEL_BY_SENDER = {
    SenderType.CUSTOMER: "Customer",
    SenderType.AGENT: "Agent",
    SenderType.AI: "AI",
    SenderType.SYSTEM: "System",
}

_default_locks = ConversationLockRegistry()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


@dataclass
class StartConversationResult:
    conversation: SupportConversation
    agent_type: str
    welcome: str


@dataclass
class ReplyResult:
    agent_type: str
    reply: str
    messages: List[SupportMessage] = field(default_factory=list)


class SupportChatService:
    """Conversation state machine for AI and human support"""

    def __init__(
            self,
            config: SupportChatConfig,
            ai_client=None,
            broadcaster=None,
            locks=None,
            notifications=NotificationService,
            order_context=OrderContextService,
    ):
        self.config = config
        self.ai_client = ai_client
        self.broadcaster = broadcaster or NullBroadcaster()
        self.locks = locks or _default_locks
        self.notifications = notifications
        self.order_context = order_context

    # ------------------------------------------------------------------ #
    # Conversation lifecycle
    # ------------------------------------------------------------------ #
    def start_conversation(
            self,
            db: Session,
            customer: Customer,
            requested_agent: str = "auto",
            channel: str = "mobile",
            context: Optional[Dict[str, Any]] = None,
    ) -> StartConversationResult:
        """Return the customer's active conversation, creating one if needed"""
        requested = self.normalize_agent(requested_agent)
        context = context or {}

        with self.locks.hold(customer_scope(customer.id)):
            notify_reason = None
            conversation = self.active_conversation(db, customer)
            created = False

            if conversation is None:
                agent_type = self.resolve_agent_type(requested)
                conversation, created = self._create_conversation(
                    db, customer, requested, agent_type, channel, context
                )
                if created and agent_type == AgentType.HUMAN.value:
                    notify_reason = NEW_CONVERSATION_REASON

            if not created:
                agent_type = AgentType.HUMAN.value if conversation.active_agent == AgentType.HUMAN.value else AgentType.AI.value

                if self.config.ai_only_mode:
                    if self._needs_ai_takeover(conversation):
                        self._switch_to_ai(db, conversation)
                    agent_type = AgentType.AI.value
                elif requested == RequestedAgent.HUMAN.value and conversation.active_agent != AgentType.HUMAN.value:
                    self._switch_to_human(db, conversation)
                    agent_type = AgentType.HUMAN.value
                    notify_reason = HUMAN_REQUESTED_REASON

            welcome = self.welcome_text(agent_type)

            if not self._has_messages(db, conversation):
                self._create_system_message(
                    db,
                    conversation,
                    welcome,
                    {"event": "chat_started", "agent_type": agent_type},
                )

            if notify_reason:
                self.notifications.notify_admins(db, conversation, notify_reason)

            db.refresh(conversation)

        return StartConversationResult(conversation=conversation, agent_type=agent_type, welcome=welcome)

    def active_conversation(self, db: Session, customer: Customer) -> Optional[SupportConversation]:
        """Most recently updated open/pending conversation for the customer"""
        return db.query(SupportConversation).filter(
            SupportConversation.customer_id == customer.id,
            SupportConversation.status.in_(ConversationStatus.active()),
        ).order_by(
            SupportConversation.updated_at.desc(),
            SupportConversation.id.desc(),
        ).first()

    def _create_conversation(
            self,
            db: Session,
            customer: Customer,
            requested: str,
            agent_type: str,
            channel: str,
            context: Dict[str, Any],
    ) -> Tuple[SupportConversation, bool]:
        is_human = agent_type == AgentType.HUMAN.value
        tags = context.get("tags")

        conversation = SupportConversation(
            customer_id=customer.id,
            channel=channel,
            status=ConversationStatus.PENDING_AGENT.value if is_human else ConversationStatus.OPEN.value,
            requested_agent=requested,
            active_agent=agent_type,
            ai_enabled=not is_human,
            handoff_requested=is_human,
            topic=str(context["topic"]) if context.get("topic") is not None else None,
            tags=list(tags) if isinstance(tags, (list, tuple)) else None,
            context=context or None,
            last_message_at=utc_now(),
        )

        db.add(conversation)
        try:
            db.commit()
        except IntegrityError:
            # Another writer created the active conversation first
            db.rollback()
            existing = self.active_conversation(db, customer)
            if existing is None:
                raise
            logger.info(f"Reusing concurrently created conversation {existing.id} for customer {customer.id}")
            return existing, False

        db.refresh(conversation)
        logger.info(
            f"Created support conversation {conversation.id} for customer {customer.id} "
            f"(agent={agent_type}, status={conversation.status})"
        )
        return conversation, True

    def _needs_ai_takeover(self, conversation: SupportConversation) -> bool:
        return (
            conversation.active_agent != AgentType.AI.value
            or not conversation.ai_enabled
            or conversation.handoff_requested
            or conversation.status == ConversationStatus.PENDING_AGENT.value
        )

    def _switch_to_ai(self, db: Session, conversation: SupportConversation) -> None:
        conversation.requested_agent = RequestedAgent.AI.value
        conversation.active_agent = AgentType.AI.value
        conversation.ai_enabled = True
        conversation.handoff_requested = False
        conversation.status = ConversationStatus.OPEN.value
        conversation.resolved_at = None
        conversation.last_message_at = utc_now()
        db.commit()
        logger.info(f"AI-only mode: conversation {conversation.id} switched back to AI")

    def _switch_to_human(self, db: Session, conversation: SupportConversation) -> None:
        conversation.requested_agent = RequestedAgent.HUMAN.value
        conversation.active_agent = AgentType.HUMAN.value
        conversation.ai_enabled = False
        conversation.handoff_requested = True
        conversation.status = ConversationStatus.PENDING_AGENT.value
        conversation.last_message_at = utc_now()
        db.commit()
        logger.info(f"Conversation {conversation.id} switched to a human agent on customer request")

    # ------------------------------------------------------------------ #
    # Customer turns
    # ------------------------------------------------------------------ #
    def receive_customer_message(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            body: str,
            metadata: Optional[Dict[str, Any]] = None,
            message_type: str = MessageType.TEXT.value,
    ) -> SupportMessage:
        with self.locks.hold(conversation_scope(conversation.id)):
            return self._record_customer_message(db, conversation, customer, body, metadata, message_type)

    def reply_to_customer(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            text: str,
    ) -> ReplyResult:
        """Record the customer's message and produce the next reply"""
        with self.locks.hold(conversation_scope(conversation.id)):
            customer_message = self._record_customer_message(db, conversation, customer, text)
            return self._respond(db, conversation, customer, customer_message, text)

    def forward_to_human(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            text: str,
    ) -> ReplyResult:
        with self.locks.hold(conversation_scope(conversation.id)):
            customer_message = self._record_customer_message(
                db, conversation, customer, text, {"source": "forward"}
            )
            return self._respond(db, conversation, customer, customer_message, text)

    def forward_attachment_to_human(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            attachment: AttachmentIn,
            caption: Optional[str] = None,
    ) -> ReplyResult:
        """Record an image/file from the customer and answer it like a text turn"""
        caption = (caption or "").strip()
        metadata: Dict[str, Any] = {"source": "attachment", "attachment": attachment.to_metadata()}
        if caption:
            metadata["caption"] = caption

        if attachment.is_image:
            message_type = MessageType.IMAGE.value
            trigger = caption or "Customer shared an image."
        else:
            message_type = MessageType.FILE.value
            trigger = caption or "Customer shared a file."

        with self.locks.hold(conversation_scope(conversation.id)):
            customer_message = self._record_customer_message(
                db,
                conversation,
                customer,
                caption or self._attachment_placeholder(attachment),
                metadata,
                message_type,
            )
            return self._respond(db, conversation, customer, customer_message, trigger)

    def _record_customer_message(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            body: str,
            metadata: Optional[Dict[str, Any]] = None,
            message_type: str = MessageType.TEXT.value,
    ) -> SupportMessage:
        # Resolved/closed conversations stay closed; the customer starts a new one
        db.refresh(conversation)
        if not conversation.is_active:
            logger.warning(f"Rejected customer message for inactive conversation {conversation.id}")
            raise ConversationClosedError(conversation.uuid)

        now = utc_now()
        message = SupportMessage(
            conversation_id=conversation.id,
            sender_type=SenderType.CUSTOMER.value,
            sender_customer_id=customer.id,
            message_type=message_type,
            body=(body or "").strip(),
            message_metadata=metadata or None,
        )
        db.add(message)

        conversation.last_message_at = now
        conversation.last_customer_message_at = now
        conversation.resolved_at = None
        conversation.status = (
            ConversationStatus.PENDING_AGENT.value
            if conversation.active_agent == AgentType.HUMAN.value
            else ConversationStatus.OPEN.value
        )

        db.commit()
        db.refresh(message)

        self._broadcast(conversation, message)
        return message

    def _respond(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            customer_message: SupportMessage,
            text: str,
    ) -> ReplyResult:
        if not self.config.ai_only_mode and self.should_handoff_to_human(text):
            system = self._request_human_handoff(db, conversation, HUMAN_REQUESTED_REASON)
            return ReplyResult(AgentType.HUMAN.value, system.body, [customer_message, system])

        rule_reply = self._rule_based_reply(db, customer, text)
        if rule_reply is not None:
            message = self._create_ai_message(db, conversation, rule_reply, {"source": "rule"})
            return ReplyResult(AgentType.AI.value, message.body, [customer_message, message])

        if self.can_use_ai(conversation):
            result = self._generate_ai_reply(db, conversation, customer, text, customer_message.id)
            if result.ok:
                message = self._create_ai_message(db, conversation, result.content, {"source": "deepseek"})
                return ReplyResult(AgentType.AI.value, message.body, [customer_message, message])

            logger.warning(
                f"Support AI reply failed for conversation {conversation.id}, using fallback: {result.error}"
            )

        if self.config.ai_only_mode:
            fallback = self.order_context.build_order_payment_reply(db, customer, text) or AI_ONLY_FALLBACK_REPLY
            message = self._create_ai_message(db, conversation, fallback, {"source": "fallback"})
            return ReplyResult(AgentType.AI.value, message.body, [customer_message, message])

        system = self._request_human_handoff(db, conversation, AI_UNAVAILABLE_REASON, FALLBACK_HANDOFF_ACK)
        return ReplyResult(AgentType.HUMAN.value, system.body, [customer_message, system])

    def _rule_based_reply(self, db: Session, customer: Customer, text: str) -> Optional[str]:
        reply = self.order_context.build_order_payment_reply(db, customer, text)
        if reply is not None:
            return reply
        return generic_keyword_reply(text)

    # ------------------------------------------------------------------ #
    # Handoff
    # ------------------------------------------------------------------ #
    def request_human_handoff(
            self,
            db: Session,
            conversation: SupportConversation,
            reason: str,
            ack_text: Optional[str] = None,
    ) -> SupportMessage:
        with self.locks.hold(conversation_scope(conversation.id)):
            return self._request_human_handoff(db, conversation, reason, ack_text)

    def _request_human_handoff(
            self,
            db: Session,
            conversation: SupportConversation,
            reason: str,
            ack_text: Optional[str] = None,
    ) -> SupportMessage:
        if self.config.ai_only_mode:
            return self._create_ai_message(
                db,
                conversation,
                self.config.ai_only_handoff_ack,
                {"event": "ai_only_mode", "reason": reason},
            )

        conversation.active_agent = AgentType.HUMAN.value
        conversation.requested_agent = RequestedAgent.HUMAN.value
        conversation.ai_enabled = False
        conversation.handoff_requested = True
        conversation.status = ConversationStatus.PENDING_AGENT.value
        conversation.last_message_at = utc_now()
        conversation.resolved_at = None
        db.commit()

        system = self._create_system_message(
            db,
            conversation,
            ack_text or DEFAULT_HANDOFF_ACK,
            {"event": "handoff_requested", "reason": reason},
        )

        self.notifications.notify_admins(db, conversation, reason)
        logger.info(f"Conversation {conversation.id} handed off to a human agent: {reason}")
        return system

    def alert_admins(self, db: Session, conversation: SupportConversation, reason: str) -> None:
        self.notifications.notify_admins(db, conversation, reason)

    # ------------------------------------------------------------------ #
    # Staff actions
    # ------------------------------------------------------------------ #
    def add_admin_reply(
            self,
            db: Session,
            conversation: SupportConversation,
            admin: User,
            body: str,
            internal_note: bool = False,
    ) -> SupportMessage:
        metadata = {"type": "internal_note" if internal_note else "agent_reply"}
        with self.locks.hold(conversation_scope(conversation.id)):
            return self._create_admin_message(
                db, conversation, admin, body, MessageType.TEXT.value, metadata, internal_note
            )

    def add_admin_attachment_reply(
            self,
            db: Session,
            conversation: SupportConversation,
            admin: User,
            attachment: AttachmentIn,
            caption: Optional[str] = None,
            internal_note: bool = False,
    ) -> SupportMessage:
        caption = (caption or "").strip()
        metadata: Dict[str, Any] = {
            "type": "internal_note" if internal_note else "agent_reply",
            "attachment": attachment.to_metadata(),
        }
        if caption:
            metadata["caption"] = caption

        message_type = MessageType.IMAGE.value if attachment.is_image else MessageType.FILE.value

        with self.locks.hold(conversation_scope(conversation.id)):
            return self._create_admin_message(
                db,
                conversation,
                admin,
                caption or self._attachment_placeholder(attachment),
                message_type,
                metadata,
                internal_note,
            )

    def _create_admin_message(
            self,
            db: Session,
            conversation: SupportConversation,
            admin: User,
            body: str,
            message_type: str,
            metadata: Dict[str, Any],
            internal_note: bool,
    ) -> SupportMessage:
        message = SupportMessage(
            conversation_id=conversation.id,
            sender_type=SenderType.SYSTEM.value if internal_note else SenderType.AGENT.value,
            sender_user_id=admin.id,
            message_type=message_type,
            body=(body or "").strip(),
            is_internal_note=internal_note,
            message_metadata=metadata,
        )
        db.add(message)

        if not internal_note:
            now = utc_now()
            conversation.assigned_user_id = admin.id
            conversation.active_agent = AgentType.HUMAN.value
            conversation.ai_enabled = False
            conversation.handoff_requested = False
            conversation.status = ConversationStatus.PENDING_CUSTOMER.value
            conversation.last_message_at = now
            conversation.last_agent_message_at = now

        db.commit()
        db.refresh(message)

        if not internal_note:
            self._broadcast(conversation, message)
            self.notifications.notify_customer(db, conversation, message)

        self._mark_read(db, conversation, (SenderType.CUSTOMER,))
        return message

    def assign_to_admin(self, db: Session, conversation: SupportConversation, admin: User) -> SupportConversation:
        with self.locks.hold(conversation_scope(conversation.id)):
            conversation.assigned_user_id = admin.id
            conversation.active_agent = AgentType.HUMAN.value
            conversation.ai_enabled = False
            db.commit()
            db.refresh(conversation)
        return conversation

    def add_ai_summary_internal_note(
            self,
            db: Session,
            conversation: SupportConversation,
            admin: User,
    ) -> SupportMessage:
        summary, provider = self._build_conversation_summary(db, conversation)

        message = SupportMessage(
            conversation_id=conversation.id,
            sender_type=SenderType.SYSTEM.value,
            sender_user_id=admin.id,
            message_type=MessageType.TEXT.value,
            body=summary,
            is_internal_note=True,
            message_metadata={
                "type": "ai_summary",
                "generated_by": admin.id,
                "generated_at": utc_now().isoformat(),
                "provider": provider,
            },
        )
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    def mark_resolved(self, db: Session, conversation: SupportConversation) -> SupportConversation:
        with self.locks.hold(conversation_scope(conversation.id)):
            conversation.status = ConversationStatus.RESOLVED.value
            conversation.resolved_at = utc_now()
            conversation.handoff_requested = False
            db.commit()

            latest = self._visible_messages(db, conversation).order_by(SupportMessage.id.desc()).first()
            if latest is None or latest.event != "session_resolved":
                self._create_system_message(
                    db, conversation, RESOLVED_NOTICE, {"event": "session_resolved"}
                )

            db.refresh(conversation)
        logger.info(f"Conversation {conversation.id} resolved")
        return conversation

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def mark_messages_read_by_customer(self, db: Session, conversation: SupportConversation) -> int:
        return self._mark_read(db, conversation, (SenderType.AGENT, SenderType.AI, SenderType.SYSTEM))

    def mark_messages_read_by_admin(self, db: Session, conversation: SupportConversation) -> int:
        return self._mark_read(db, conversation, (SenderType.CUSTOMER,))

    def _mark_read(self, db: Session, conversation: SupportConversation, senders) -> int:
        updated = db.query(SupportMessage).filter(
            SupportMessage.conversation_id == conversation.id,
            SupportMessage.is_internal_note == False,  # noqa: E712
            SupportMessage.read_at.is_(None),
            SupportMessage.sender_type.in_([sender.value for sender in senders]),
        ).update({SupportMessage.read_at: utc_now()}, synchronize_session="fetch")
        db.commit()
        return updated

    def get_messages(
            self,
            db: Session,
            conversation: SupportConversation,
            after_id: Optional[int] = None,
            limit: int = 50,
    ) -> List[SupportMessage]:
        """Customer-visible messages in id order, cursor paginated"""
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        query = self._visible_messages(db, conversation)
        if after_id is not None:
            query = query.filter(SupportMessage.id > after_id)

        return query.order_by(SupportMessage.id.asc()).limit(limit).all()

    def _visible_messages(self, db: Session, conversation: SupportConversation):
        return db.query(SupportMessage).filter(
            SupportMessage.conversation_id == conversation.id,
            SupportMessage.is_internal_note == False,  # noqa: E712
        )

    def _has_messages(self, db: Session, conversation: SupportConversation) -> bool:
        return db.query(SupportMessage.id).filter(
            SupportMessage.conversation_id == conversation.id
        ).first() is not None

    # ------------------------------------------------------------------ #
    # AI
    # ------------------------------------------------------------------ #
    def can_use_ai(self, conversation: SupportConversation) -> bool:
        return (
            self.config.ai_key_configured
            and self.ai_client is not None
            and bool(conversation.ai_enabled)
            and conversation.active_agent != AgentType.HUMAN.value
        )

    def build_ai_messages(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            text: str,
            exclude_message_id: Optional[int] = None,
    ) -> List[Dict[str, str]]:
        """Prompt for the reply: instructions, customer/order context, recent history, new input"""
        snapshot = self.order_context.build_order_context_snapshot(db, customer, text)

        history_query = self._visible_messages(db, conversation)
        if exclude_message_id is not None:
            history_query = history_query.filter(SupportMessage.id != exclude_message_id)
        history = list(reversed(
            history_query.order_by(SupportMessage.id.desc()).limit(HISTORY_LIMIT).all()
        ))

        messages = [
            {
                "role": "system",
                "content": AI_ONLY_SYSTEM_PROMPT if self.config.ai_only_mode else SYSTEM_PROMPT,
            },
            {
                "role": "user",
                "content": f"Customer: {customer.name or 'Customer'}. "
                           f"Conversation channel: {conversation.channel or 'mobile'}.",
            },
            {
                "role": "user",
                "content": "Customer order context (JSON):\n" + json.dumps(snapshot, ensure_ascii=False),
            },
        ]
        messages.extend(
            {"role": CHAT_ROLE_BY_SENDER[message.sender], "content": message.body}
            for message in history
        )
        messages.append({"role": "user", "content": text})
        return messages

    def _generate_ai_reply(
            self,
            db: Session,
            conversation: SupportConversation,
            customer: Customer,
            text: str,
            exclude_message_id: Optional[int],
    ) -> ChatResult:
        try:
            messages = self.build_ai_messages(db, conversation, customer, text, exclude_message_id)
            result = self.ai_client.try_chat(messages, REPLY_TEMPERATURE)
        except Exception as e:
            return ChatResult.failure(str(e))

        if result.ok and not result.content.strip():
            return ChatResult.success(EMPTY_AI_REPLY)
        return result

    def _build_conversation_summary(self, db: Session, conversation: SupportConversation) -> Tuple[str, str]:
        messages = list(reversed(
            self._visible_messages(db, conversation)
            .order_by(SupportMessage.id.desc())
            .limit(SUMMARY_HISTORY_LIMIT)
            .all()
        ))

        if not messages:
            return "AI summary: No messages available yet.", "fallback"

        if self.config.ai_key_configured and self.ai_client is not None:
            transcript = "\n".join(
                f"{TRANSCRIPT_LABEL_BY_SENDER[message.sender]}: {message.body}" for message in messages
            )
            try:
                result = self.ai_client.try_chat([
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": "Create an internal support summary with sections: "
                                   "Issue, Key facts, Risk level, Next action.\n\n"
                                   f"Conversation:\n{transcript}",
                    },
                ], SUMMARY_TEMPERATURE)
            except Exception as e:
                result = ChatResult.failure(str(e))

            if result.ok and result.content.strip():
                return result.content.strip(), "deepseek"

            logger.warning(
                f"Support summary generation failed for conversation {conversation.id}, "
                f"using fallback summary: {result.error or 'empty response'}"
            )

        last_customer = next(
            (m for m in reversed(messages) if m.sender == SenderType.CUSTOMER), None
        )
        last_agent = next(
            (m for m in reversed(messages) if m.sender in (SenderType.AGENT, SenderType.AI)), None
        )

        lines = [
            "AI summary (fallback):",
            f"Issue: {conversation.topic or 'General support request'}",
            f"Status: {conversation.status or 'open'}",
        ]
        if last_customer is not None:
            lines.append(f"Last customer message: {_truncate(last_customer.body, SUMMARY_EXCERPT_LENGTH)}")
        if last_agent is not None:
            lines.append(f"Last agent reply: {_truncate(last_agent.body, SUMMARY_EXCERPT_LENGTH)}")
        lines.append("Next action: Review conversation and provide final human response if needed.")

        return "\n".join(lines), "fallback"

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def normalize_agent(requested: Optional[str]) -> str:
        value = (requested or "").strip().lower()
        allowed = {agent.value for agent in RequestedAgent}
        return value if value in allowed else RequestedAgent.AUTO.value

    def resolve_agent_type(self, requested: str) -> str:
        if self.config.ai_only_mode:
            return AgentType.AI.value
        if requested == RequestedAgent.HUMAN.value:
            return AgentType.HUMAN.value
        return AgentType.AI.value if self.config.ai_key_configured else AgentType.HUMAN.value

    def welcome_text(self, agent_type: str) -> str:
        if agent_type == AgentType.HUMAN.value:
            return HUMAN_WELCOME
        return AI_ONLY_WELCOME if self.config.ai_only_mode else AI_WELCOME

    @staticmethod
    def should_handoff_to_human(text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in HANDOFF_KEYWORDS)

    @staticmethod
    def _attachment_placeholder(attachment: AttachmentIn) -> str:
        return "Sent an image" if attachment.is_image else "Sent a file"

    def _create_ai_message(
            self,
            db: Session,
            conversation: SupportConversation,
            body: str,
            metadata: Dict[str, Any],
    ) -> SupportMessage:
        message = SupportMessage(
            conversation_id=conversation.id,
            sender_type=SenderType.AI.value,
            message_type=MessageType.TEXT.value,
            body=body.strip(),
            message_metadata=metadata or None,
        )
        db.add(message)

        now = utc_now()
        conversation.last_message_at = now
        conversation.last_agent_message_at = now
        if conversation.active_agent != AgentType.HUMAN.value:
            conversation.status = ConversationStatus.PENDING_CUSTOMER.value

        db.commit()
        db.refresh(message)

        self._broadcast(conversation, message)
        return message

    def _create_system_message(
            self,
            db: Session,
            conversation: SupportConversation,
            body: str,
            metadata: Optional[Dict[str, Any]] = None,
    ) -> SupportMessage:
        message = SupportMessage(
            conversation_id=conversation.id,
            sender_type=SenderType.SYSTEM.value,
            message_type=MessageType.TEXT.value,
            body=body.strip(),
            message_metadata=metadata or None,
        )
        db.add(message)
        db.commit()
        db.refresh(message)

        self._broadcast(conversation, message)
        return message

    def _broadcast(self, conversation: SupportConversation, message: SupportMessage) -> None:
        if not self.config.realtime_enabled or message.is_internal_note:
            return
        self.broadcaster.broadcast_message(conversation, message)
