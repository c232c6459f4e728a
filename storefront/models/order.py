# storefront/models/order.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now

Money = Numeric(12, 2, asdecimal=False)


class Order(Base):
    __tablename__ = "orders"

    CUSTOMER_STATUS_LABELS = {
        "received": "Order received",
        "processing": "Processing",
        "dispatched": "Dispatched",
        "in_transit": "In transit",
        "out_for_delivery": "Out for delivery",
        "delivered": "Delivered",
        "issue_detected": "Issue detected",
        "refunded": "Refunded",
    }

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(40), unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)

    status = Column(String(30), nullable=False, default="pending")
    customer_status = Column(String(30))
    payment_status = Column(String(30), nullable=False, default="unpaid")
    currency = Column(String(3), nullable=False, default="USD")
    subtotal = Column(Money, default=0)
    shipping_total = Column(Money, default=0)
    discount_total = Column(Money, default=0)
    grand_total = Column(Money, default=0)
    placed_at = Column(DateTime(timezone=True))

    # Supplier (CJ) side of the order
    cj_order_id = Column(String(64))
    cj_order_status = Column(String(40))
    cj_payment_status = Column(String(40))

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    customer = relationship("Customer", back_populates="orders")
    payments = relationship("Payment", back_populates="order", order_by="Payment.id")
    linehaul_shipment = relationship("LinehaulShipment", uselist=False, back_populates="order")
    last_mile_delivery = relationship("LastMileDelivery", uselist=False, back_populates="order")

    @property
    def customer_status_label(self) -> str:
        status = self.customer_status or self.status or ""
        label = self.CUSTOMER_STATUS_LABELS.get(status)
        if label:
            return label
        return status.replace("_", " ").capitalize()

    @property
    def latest_payment(self):
        return self.payments[-1] if self.payments else None


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    provider = Column(String(40), nullable=False)
    status = Column(String(30), nullable=False, default="pending")
    amount = Column(Money, default=0)
    currency = Column(String(3), default="USD")
    provider_reference = Column(String(128))
    paid_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utc_now)

    order = relationship("Order", back_populates="payments")


class LinehaulShipment(Base):
    """International leg from the supplier to the destination country"""
    __tablename__ = "linehaul_shipments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    carrier = Column(String(80))
    carrier_status = Column(String(60))
    tracking_number = Column(String(80))
    tracking_url = Column(String(500))

    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    order = relationship("Order", back_populates="linehaul_shipment")


class LastMileDelivery(Base):
    """Domestic delivery to the customer's door"""
    __tablename__ = "last_mile_deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    status = Column(String(60))
    tracking_number = Column(String(80))
    tracking_url = Column(String(500))

    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    order = relationship("Order", back_populates="last_mile_delivery")
