# storefront/services/promotions/campaign_manager.py
"""Picks the single best discount for a cart"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.config.settings import Settings, get_settings
from storefront.models.cart import Cart
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.services.cart.cart_service import CartService
from storefront.services.promotions.promotion_engine import PromotionEngine

logger = logging.getLogger(__name__)

SHIPPING_SUPPORT_INTENT = "shipping_support"


@dataclass
class DiscountCandidate:
    amount: float
    label: str
    source: str  # promotion, first_order, high_value
    breakdown: List[Dict[str, Any]] = field(default_factory=list)


class CampaignManager:
    """Compares promotion, first-order and high-value discounts"""

    def __init__(self, settings: Optional[Settings] = None, engine=PromotionEngine):
        self.settings = settings or get_settings()
        self.engine = engine

    def best_for_cart(self, db: Session, cart: Cart, customer: Optional[Customer] = None) -> Optional[DiscountCandidate]:
        subtotal = CartService.subtotal(cart)
        context = CartService.cart_context(cart)
        if customer is not None:
            context["customer_id"] = customer.id

        candidates: List[DiscountCandidate] = []

        promotion_result = self.engine.apply_promotions(db, context)
        discounts = promotion_result.get("discounts") or []
        shipping_support = any(d.get("intent") == SHIPPING_SUPPORT_INTENT for d in discounts)

        if discounts:
            candidates.append(DiscountCandidate(
                amount=float(promotion_result.get("total_discount") or 0),
                label=" + ".join(d["label"] for d in discounts),
                source="promotion",
                breakdown=discounts,
            ))

        # Shipping-support promotions exclude both built-in offers
        if not shipping_support:
            first_order = self.first_order_discount(db, customer, subtotal)
            if first_order is not None:
                candidates.append(DiscountCandidate(first_order, "First order discount", "first_order"))

            high_value = self.high_value_discount(subtotal)
            if high_value is not None:
                candidates.append(DiscountCandidate(high_value, "High value order discount", "high_value"))

        candidates = [c for c in candidates if c.amount > 0]
        if not candidates:
            return None

        # sorted() is stable, so ties keep declaration order
        best = sorted(candidates, key=lambda c: c.amount, reverse=True)[0]
        logger.debug(f"Best discount for cart {cart.id}: {best.source} {best.amount:.2f}")
        return best

    def first_order_discount(self, db: Session, customer: Optional[Customer], subtotal: float) -> Optional[float]:
        if customer is None or subtotal <= 0:
            return None

        has_paid_order = db.query(Order.id).filter(
            Order.customer_id == customer.id,
            Order.payment_status == "paid",
        ).first() is not None
        if has_paid_order:
            return None

        return round(min(subtotal * self.settings.FIRST_ORDER_DISCOUNT_RATE, self.settings.FIRST_ORDER_DISCOUNT_MAX), 2)

    def high_value_discount(self, subtotal: float) -> Optional[float]:
        if subtotal < self.settings.HIGH_VALUE_DISCOUNT_THRESHOLD:
            return None
        return round(min(subtotal * self.settings.HIGH_VALUE_DISCOUNT_RATE, self.settings.HIGH_VALUE_DISCOUNT_MAX), 2)
