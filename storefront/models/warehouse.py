# storefront/models/warehouse.py
from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now
from storefront.models.order import Money


class LocalWarehouse(Base):
    __tablename__ = "local_warehouses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255))
    phone = Column(String(30))
    is_default = Column(Boolean, nullable=False, default=False)

    line1 = Column(String(255))
    city = Column(String(120))
    state = Column(String(120))
    postal_code = Column(String(30))
    country = Column(String(2), default="CN")

    carrier_name = Column(String(120), nullable=False, default="Local delivery")
    # Charged per started kg above the heaviest bounded tier
    extra_kg_rate = Column(Money, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    shipping_tiers = relationship(
        "ShippingTier", back_populates="warehouse", order_by="ShippingTier.id"
    )

    @classmethod
    def default(cls, db):
        return db.query(cls).filter(cls.is_default == True).order_by(cls.id.asc()).first()  # noqa: E712


class ShippingTier(Base):
    __tablename__ = "shipping_tiers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    warehouse_id = Column(Integer, ForeignKey("local_warehouses.id"), nullable=False, index=True)
    max_weight_kg = Column(Numeric(10, 3, asdecimal=False), nullable=True)  # NULL = no upper bound
    price = Column(Money, nullable=False, default=0)

    warehouse = relationship("LocalWarehouse", back_populates="shipping_tiers")
