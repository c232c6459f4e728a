# storefront/schemas/__init__.py
from .support import (
    AttachmentIn,
    ConversationOut,
    MessageOut,
    StartConversationRequest,
    StartConversationResponse,
    CustomerMessageRequest,
    AttachmentMessageRequest,
    AdminReplyRequest,
    AdminActionRequest,
    ReplyResponse,
    MessagesResponse,
)
from .cart import (
    FreightOption,
    FreightQuoteResponse,
    ShippingLineOut,
    ShippingFeesResponse,
    DiscountCandidateOut,
)

__all__ = [
    "AttachmentIn",
    "ConversationOut",
    "MessageOut",
    "StartConversationRequest",
    "StartConversationResponse",
    "CustomerMessageRequest",
    "AttachmentMessageRequest",
    "AdminReplyRequest",
    "AdminActionRequest",
    "ReplyResponse",
    "MessagesResponse",
    "FreightOption",
    "FreightQuoteResponse",
    "ShippingLineOut",
    "ShippingFeesResponse",
    "DiscountCandidateOut",
]
