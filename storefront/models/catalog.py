# storefront/models/catalog.py
from sqlalchemy import Column, String, DateTime, JSON, Integer, ForeignKey, Text

from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now
from storefront.models.order import Money


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    category_id = Column(Integer, index=True)
    price = Column(Money, nullable=False, default=0)  # base selling price

    cj_pid = Column(String(64), index=True)
    # Raw supplier product payload (packingWeight, productWeight, ...)
    supplier_payload = Column(JSON)
    # {locale: {field: value}}
    translations = Column(JSON)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    variants = relationship("ProductVariant", back_populates="product")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String(255))
    price = Column(Money, nullable=False, default=0)

    cj_vid = Column(String(64), index=True)
    # Raw supplier variant payload (variantWeight, ...)
    supplier_payload = Column(JSON)

    product = relationship("Product", back_populates="variants")
