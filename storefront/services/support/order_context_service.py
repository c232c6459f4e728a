# storefront/services/support/order_context_service.py
"""Order and payment context for support replies and AI prompts"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.customer import Customer
from storefront.models.order import Order

ORDER_NUMBER_PATTERNS = [
    re.compile(r"\b(DS-[A-Z0-9]+)\b", re.IGNORECASE),
    re.compile(r"\b([A-Z]{2,6}-\d{4,})\b", re.IGNORECASE),
    re.compile(r"#([A-Z0-9]{6,})\b", re.IGNORECASE),
]

ORDER_PAYMENT_KEYWORDS = ("order", "track", "delivery", "payment", "charged", "refund")

SNAPSHOT_ORDER_LIMIT = 5

TRACKING_GUIDANCE = (
    "You can track your order from the Orders screen. "
    "Please share your order number so I can check the latest tracking update for you."
)
REFUND_GUIDANCE = (
    "For returns and refunds, please share your order number and the reason. "
    "I will check the order and explain the next steps."
)
PAYMENT_GUIDANCE = (
    "For payment issues, please share your order number and the payment method used "
    "so the transaction details can be verified."
)


def extract_order_number(text: Optional[str]) -> Optional[str]:
    """Return the first order-number-looking token, upper-cased"""
    if not text:
        return None

    for pattern in ORDER_NUMBER_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).upper()

    return None


def generic_keyword_reply(text: str) -> Optional[str]:
    """Fixed guidance for tracking, refund and payment questions"""
    lowered = text.lower()

    if "track" in lowered or "where is my order" in lowered:
        return TRACKING_GUIDANCE

    if "refund" in lowered or "return" in lowered:
        return REFUND_GUIDANCE

    if "payment" in lowered or "charged" in lowered:
        return PAYMENT_GUIDANCE

    return None


def tracking_status(order: Order) -> str:
    """Last-mile status, then linehaul carrier status, then the order status"""
    delivery = order.last_mile_delivery
    if delivery is not None and delivery.status:
        return delivery.status

    linehaul = order.linehaul_shipment
    if linehaul is not None and linehaul.carrier_status:
        return linehaul.carrier_status

    return order.status


def tracking_number(order: Order) -> Optional[str]:
    delivery = order.last_mile_delivery
    if delivery is not None and delivery.tracking_number:
        return delivery.tracking_number

    linehaul = order.linehaul_shipment
    if linehaul is not None and linehaul.tracking_number:
        return linehaul.tracking_number

    return None


def tracking_url(order: Order) -> Optional[str]:
    delivery = order.last_mile_delivery
    if delivery is not None and delivery.tracking_url:
        return delivery.tracking_url

    linehaul = order.linehaul_shipment
    if linehaul is not None and linehaul.tracking_url:
        return linehaul.tracking_url

    return None


class OrderContextService:
    """Reads a customer's orders and turns them into replies or prompt context"""

    @staticmethod
    def _customer_orders(db: Session, customer: Customer):
        return db.query(Order).filter(Order.customer_id == customer.id)

    @staticmethod
    def _recent_orders(db: Session, customer: Customer):
        return OrderContextService._customer_orders(db, customer).order_by(
            func.coalesce(Order.placed_at, Order.created_at).desc(),
            Order.id.desc(),
        )

    @staticmethod
    def find_order(db: Session, customer: Customer, order_number: Optional[str]) -> Optional[Order]:
        """Exact match when a number is given, otherwise the most recent order"""
        if order_number:
            return OrderContextService._customer_orders(db, customer).filter(
                func.upper(Order.number) == order_number.upper()
            ).first()

        return OrderContextService._recent_orders(db, customer).first()

    @staticmethod
    def build_order_payment_reply(db: Session, customer: Customer, text: str) -> Optional[str]:
        """Deterministic status reply for order/payment questions, or None"""
        lowered = text.lower()
        order_number = extract_order_number(text)

        if order_number is None and not any(keyword in lowered for keyword in ORDER_PAYMENT_KEYWORDS):
            return None

        order = OrderContextService.find_order(db, customer, order_number)
        if order is None:
            if order_number:
                return (
                    f"I could not find order {order_number} on your account. "
                    "Please double-check the order number or share the email address used at checkout."
                )
            return (
                "I could not find any orders on your account yet. "
                "Please share your order number so I can check it for you."
            )

        return OrderContextService.format_order_update(order)

    @staticmethod
    def format_order_update(order: Order) -> str:
        payment = order.latest_payment
        payment_part = f"Payment: {order.payment_status}"
        if payment is not None and payment.provider_reference:
            payment_part += f", Ref: {payment.provider_reference}"

        tracking_part = f"Tracking: {tracking_status(order)}"
        number = tracking_number(order)
        if number:
            tracking_part += f" (No: {number})"

        total = float(order.grand_total or 0)

        return (
            f"Latest update for order {order.number}: {order.customer_status_label}. "
            f"{payment_part}. {tracking_part}. Total: {total:.2f} {order.currency}."
        )

    @staticmethod
    def build_order_context_snapshot(db: Session, customer: Customer, text: str = "") -> List[Dict[str, Any]]:
        """Summaries of up to five recent orders; a referenced order comes first"""
        orders = OrderContextService._recent_orders(db, customer).limit(SNAPSHOT_ORDER_LIMIT).all()

        order_number = extract_order_number(text)
        if order_number:
            referenced = OrderContextService.find_order(db, customer, order_number)
            if referenced is not None:
                orders = [referenced] + [order for order in orders if order.id != referenced.id]

        return [OrderContextService.summarize_order(order) for order in orders[:SNAPSHOT_ORDER_LIMIT]]

    @staticmethod
    def summarize_order(order: Order) -> Dict[str, Any]:
        payment = order.latest_payment

        return {
            "order_number": order.number,
            "status": order.status,
            "customer_status": order.customer_status_label,
            "payment_status": order.payment_status,
            "currency": order.currency,
            "grand_total": float(order.grand_total or 0),
            "placed_at": order.placed_at.isoformat() if order.placed_at else None,
            "supplier_order_status": order.cj_order_status,
            "supplier_payment_status": order.cj_payment_status,
            "tracking_number": tracking_number(order),
            "tracking_status": tracking_status(order),
            "tracking_url": tracking_url(order),
            "latest_payment": {
                "provider": payment.provider,
                "status": payment.status,
                "amount": float(payment.amount or 0),
                "currency": payment.currency,
                "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
                "reference": payment.provider_reference,
            } if payment is not None else None,
        }
