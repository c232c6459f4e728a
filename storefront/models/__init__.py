# storefront/models/__init__.py
from .base import Base
from .customer import Customer, User
from .support import (
    SupportConversation,
    SupportMessage,
    ConversationStatus,
    AgentType,
    RequestedAgent,
    SenderType,
    MessageType,
)
from .order import Order, Payment, LinehaulShipment, LastMileDelivery
from .catalog import Product, ProductVariant
from .cart import Cart, CartItem, CartShipping
from .warehouse import LocalWarehouse, ShippingTier
from .promotion import Promotion, PromotionTarget, PromotionCondition
from .notification import Notification

__all__ = [
    "Base",
    "Customer",
    "User",
    "SupportConversation",
    "SupportMessage",
    "ConversationStatus",
    "AgentType",
    "RequestedAgent",
    "SenderType",
    "MessageType",
    "Order",
    "Payment",
    "LinehaulShipment",
    "LastMileDelivery",
    "Product",
    "ProductVariant",
    "Cart",
    "CartItem",
    "CartShipping",
    "LocalWarehouse",
    "ShippingTier",
    "Promotion",
    "PromotionTarget",
    "PromotionCondition",
    "Notification",
]
