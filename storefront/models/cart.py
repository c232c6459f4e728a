# storefront/models/cart.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now
from storefront.models.order import Money


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    session_id = Column(String(100), index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    customer = relationship("Customer")
    items = relationship("CartItem", back_populates="cart", order_by="CartItem.id")
    shippings = relationship("CartShipping", back_populates="cart", order_by="CartShipping.id")


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)
    fulfillment_provider_id = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
    variant = relationship("ProductVariant")


class CartShipping(Base):
    """One shipping quote line; rebuilt on every fee calculation"""
    __tablename__ = "cart_shippings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    provider_id = Column(Integer, nullable=True)  # NULL for the domestic warehouse line
    logistic_name = Column(String(120))
    logistic_price = Column(Money, nullable=False, default=0)
    total_postage_fee = Column(Money)
    aging = Column(String(40))

    created_at = Column(DateTime(timezone=True), default=utc_now)

    cart = relationship("Cart", back_populates="shippings")
