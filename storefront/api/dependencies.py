# ============================================================================
# FILE: storefront/api/dependencies.py
# Service wiring and lookups shared by the v1 routes
# ============================================================================
from fastapi import Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from storefront.config.database import get_db
from storefront.config.redis import get_redis
from storefront.config.settings import get_settings
from storefront.models.cart import Cart
from storefront.models.customer import Customer, User
from storefront.models.support import SupportConversation
from storefront.services.ai.deepseek_client import create_deepseek_client
from storefront.services.cart.shipping_service import CartShippingService
from storefront.services.fulfillment.cj_client import CJDropshippingClient
from storefront.services.notification.realtime import NullBroadcaster, RealtimeBroadcaster
from storefront.services.promotions.campaign_manager import CampaignManager
from storefront.services.support.config import SupportChatConfig
from storefront.services.support.locks import RedisConversationLockRegistry
from storefront.services.support.support_chat_service import SupportChatService


# ============================================================================
# Services
# ============================================================================

def get_support_chat_service() -> SupportChatService:
    settings = get_settings()
    redis_client = get_redis()
    config = SupportChatConfig.from_settings(settings)

    return SupportChatService(
        config=config,
        ai_client=create_deepseek_client(settings, redis_client),
        broadcaster=RealtimeBroadcaster(redis_client) if config.realtime_enabled else NullBroadcaster(),
        locks=RedisConversationLockRegistry(redis_client),
    )


def get_cart_shipping_service() -> CartShippingService:
    return CartShippingService(CJDropshippingClient())


def get_campaign_manager() -> CampaignManager:
    return CampaignManager()


# ============================================================================
# Lookups
# ============================================================================

def get_customer(
        customer_id: int = Path(..., ge=1),
        db: Session = Depends(get_db)
) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


def get_customer_conversation(
        conversation_uuid: str = Path(...),
        customer: Customer = Depends(get_customer),
        db: Session = Depends(get_db)
) -> SupportConversation:
    """Conversation owned by the customer in the path"""
    conversation = db.query(SupportConversation).filter(
        SupportConversation.uuid == conversation_uuid,
        SupportConversation.customer_id == customer.id,
    ).first()
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


def get_conversation(
        conversation_uuid: str = Path(...),
        db: Session = Depends(get_db)
) -> SupportConversation:
    conversation = db.query(SupportConversation).filter(
        SupportConversation.uuid == conversation_uuid
    ).first()
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


def require_support_staff(db: Session, admin_id: int) -> User:
    """Staff account allowed to answer support chats"""
    admin = db.query(User).filter(User.id == admin_id).first()
    if not admin or not admin.can_handle_support:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User cannot handle support conversations"
        )
    return admin


def get_cart(
        cart_id: int = Path(..., ge=1),
        db: Session = Depends(get_db)
) -> Cart:
    cart = db.query(Cart).filter(Cart.id == cart_id).first()
    if not cart:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart not found")
    return cart
