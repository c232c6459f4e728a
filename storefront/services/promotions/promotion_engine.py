# storefront/services/promotions/promotion_engine.py
"""Rule evaluation for catalog promotions"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from storefront.models.order import Order
from storefront.models.promotion import Promotion

logger = logging.getLogger(__name__)


class PromotionEngine:
    """
    Finds the promotions that apply to a cart and turns them into discounts.

    Cart context shape: {"lines": [{"product_id", "category_id", ...}],
    "subtotal": float, "customer_id": int | None}
    """

    @staticmethod
    def active_promotions(db: Session, now: Optional[datetime] = None) -> List[Promotion]:
        now = now or datetime.now(timezone.utc)
        return db.query(Promotion).options(
            selectinload(Promotion.targets),
            selectinload(Promotion.conditions),
        ).filter(
            Promotion.is_active == True,  # noqa: E712
            or_(Promotion.starts_at.is_(None), Promotion.starts_at <= now),
            or_(Promotion.ends_at.is_(None), Promotion.ends_at >= now),
        ).order_by(Promotion.priority.desc(), Promotion.id.asc()).all()

    @staticmethod
    def get_applicable_promotions(db: Session, cart: Dict[str, Any]) -> List[Promotion]:
        lines = cart.get("lines") or []
        product_ids = {line.get("product_id") for line in lines if line.get("product_id")}
        category_ids = {line.get("category_id") for line in lines if line.get("category_id")}
        subtotal = float(cart.get("subtotal") or 0)
        customer_id = cart.get("customer_id")

        applicable = []
        for promotion in PromotionEngine.active_promotions(db):
            if promotion.targets and not any(
                    (target.target_type == "category" and target.target_id in category_ids)
                    or (target.target_type == "product" and target.target_id in product_ids)
                    for target in promotion.targets
            ):
                continue

            if not PromotionEngine._conditions_met(db, promotion, subtotal, customer_id):
                continue

            applicable.append(promotion)

        return applicable

    @staticmethod
    def _conditions_met(db: Session, promotion: Promotion, subtotal: float, customer_id: Optional[int]) -> bool:
        for condition in promotion.conditions:
            if condition.condition_type == "min_cart_value":
                try:
                    minimum = float(condition.condition_value)
                except (TypeError, ValueError):
                    logger.warning(f"Promotion {promotion.id} has a non-numeric min_cart_value condition")
                    return False
                if subtotal < minimum:
                    return False

            if condition.condition_type == "first_order_only":
                if not PromotionEngine.is_first_order_eligible(db, customer_id):
                    return False

        return True

    @staticmethod
    def is_first_order_eligible(db: Session, customer_id: Optional[int]) -> bool:
        if not customer_id:
            return True
        return db.query(Order.id).filter(
            Order.customer_id == customer_id,
            Order.payment_status == "paid",
        ).first() is None

    @staticmethod
    def discount_for(promotion: Promotion, subtotal: float) -> float:
        value = float(promotion.value or 0)
        if promotion.value_type == "percentage":
            return subtotal * (value / 100)
        if promotion.value_type == "fixed":
            return value
        return 0.0

    @staticmethod
    def max_discount_cap(promotion: Promotion) -> Optional[float]:
        caps = []
        for condition in promotion.conditions:
            if condition.condition_type != "max_discount":
                continue
            try:
                caps.append(float(condition.condition_value))
            except (TypeError, ValueError):
                continue
        return min(caps) if caps else None

    @staticmethod
    def apply_promotions(db: Session, cart: Dict[str, Any]) -> Dict[str, Any]:
        """Discount breakdown for the cart after stacking rules"""
        applicable = PromotionEngine.get_applicable_promotions(db, cart)
        subtotal = max(0.0, float(cart.get("subtotal") or 0))

        def amount(promotion):
            return PromotionEngine.discount_for(promotion, subtotal)

        urgency_exclusive = [
            p for p in applicable
            if (p.promotion_intent or "other") == "urgency" and p.stacking_rule == "exclusive"
        ]
        exclusive = [p for p in applicable if p.stacking_rule == "exclusive"]

        if urgency_exclusive:
            to_apply = [max(urgency_exclusive, key=amount)]
        elif exclusive:
            to_apply = [max(exclusive, key=amount)]
        else:
            to_apply = applicable

        discounts = []
        total_discount = 0.0
        for promotion in to_apply:
            discount = min(subtotal, max(0.0, amount(promotion)))
            cap = PromotionEngine.max_discount_cap(promotion)
            if cap is not None:
                discount = min(discount, cap)

            discounts.append({
                "promotion_id": promotion.id,
                "label": promotion.name,
                "amount": round(discount, 2),
                "value_type": promotion.value_type,
                "value": float(promotion.value or 0),
                "intent": promotion.promotion_intent or "other",
                "stacking_rule": promotion.stacking_rule,
            })
            total_discount += discount

        return {
            "discounts": discounts,
            "total_discount": round(min(subtotal, total_discount), 2),
        }
