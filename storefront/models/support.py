# storefront/models/support.py
import enum
import uuid

from sqlalchemy import (
    Column, String, DateTime, JSON, Text, Boolean, Integer, ForeignKey, Index, text,
)
from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now


class ConversationStatus(str, enum.Enum):
    OPEN = "open"
    PENDING_AGENT = "pending_agent"
    PENDING_CUSTOMER = "pending_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @classmethod
    def active(cls):
        return (cls.OPEN.value, cls.PENDING_AGENT.value, cls.PENDING_CUSTOMER.value)


class AgentType(str, enum.Enum):
    AI = "ai"
    HUMAN = "human"


class RequestedAgent(str, enum.Enum):
    AUTO = "auto"
    AI = "ai"
    HUMAN = "human"


class SenderType(str, enum.Enum):
    CUSTOMER = "customer"
    AGENT = "agent"
    AI = "ai"
    SYSTEM = "system"


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"


_ACTIVE_STATUS_SQL = "status IN ('open', 'pending_agent', 'pending_customer')"


class SupportConversation(Base):
    __tablename__ = "support_conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    channel = Column(String(30), default="mobile")
    status = Column(String(20), nullable=False, default=ConversationStatus.OPEN.value)
    requested_agent = Column(String(10), nullable=False, default=RequestedAgent.AUTO.value)
    active_agent = Column(String(10), nullable=False, default=AgentType.AI.value)
    ai_enabled = Column(Boolean, nullable=False, default=True)
    handoff_requested = Column(Boolean, nullable=False, default=False)

    topic = Column(String(200))
    tags = Column(JSON)
    context = Column(JSON)

    last_message_at = Column(DateTime(timezone=True))
    last_customer_message_at = Column(DateTime(timezone=True))
    last_agent_message_at = Column(DateTime(timezone=True))
    resolved_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    customer = relationship("Customer")
    assigned_user = relationship("User")
    messages = relationship(
        "SupportMessage",
        back_populates="conversation",
        order_by="SupportMessage.id",
        lazy="dynamic",
    )

    # One active conversation per customer, enforced on write
    __table_args__ = (
        Index(
            "uq_support_conversations_active_customer",
            "customer_id",
            unique=True,
            sqlite_where=text(_ACTIVE_STATUS_SQL),
            postgresql_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_support_conversations_status_updated", "status", "updated_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ConversationStatus.active()


class SupportMessage(Base):
    __tablename__ = "support_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(Integer, ForeignKey("support_conversations.id"), nullable=False, index=True)

    sender_type = Column(String(20), nullable=False)  # customer, agent, ai, system
    sender_customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    sender_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    message_type = Column(String(10), nullable=False, default=MessageType.TEXT.value)
    body = Column(Text, nullable=False, default="")
    message_metadata = Column("metadata", JSON)
    is_internal_note = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utc_now)

    conversation = relationship("SupportConversation", back_populates="messages")

    @property
    def sender(self) -> SenderType:
        return SenderType(self.sender_type)

    @property
    def event(self):
        return (self.message_metadata or {}).get("event")
