# ============================================================================
# FILE: storefront/api/v1/cart.py
# Cart pricing endpoints - thin HTTP layer
# ============================================================================
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.dependencies import get_campaign_manager, get_cart, get_cart_shipping_service
from storefront.config.database import get_db
from storefront.core.exceptions import MissingDefaultWarehouseError
from storefront.models.cart import Cart, CartShipping
from storefront.schemas.cart import DiscountCandidateOut, ShippingFeesResponse, ShippingLineOut
from storefront.services.cart.shipping_service import CartShippingService
from storefront.services.promotions.campaign_manager import CampaignManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carts", tags=["cart"])


@router.post("/{cart_id}/shipping", response_model=ShippingFeesResponse)
def calculate_shipping(
        cart: Cart = Depends(get_cart),
        service: CartShippingService = Depends(get_cart_shipping_service),
        db: Session = Depends(get_db)
):
    """Recompute shipping quotes for the cart"""
    try:
        total = service.calculate_shipping_fees(db, cart)
    except MissingDefaultWarehouseError as e:
        logger.error(str(e))
        raise HTTPException(status_code=503, detail="Shipping is not configured")

    lines = db.query(CartShipping).filter(
        CartShipping.cart_id == cart.id
    ).order_by(CartShipping.id.asc()).all()

    return ShippingFeesResponse(
        cart_id=cart.id,
        total=total,
        lines=[ShippingLineOut.model_validate(line) for line in lines],
    )


@router.get("/{cart_id}/discount", response_model=Optional[DiscountCandidateOut])
def best_discount(
        cart: Cart = Depends(get_cart),
        manager: CampaignManager = Depends(get_campaign_manager),
        db: Session = Depends(get_db)
):
    """Best single discount for the cart, or null"""
    candidate = manager.best_for_cart(db, cart, cart.customer)
    if candidate is None:
        return None
    return DiscountCandidateOut(
        amount=candidate.amount,
        label=candidate.label,
        source=candidate.source,
        breakdown=candidate.breakdown,
    )
