# storefront/models/promotion.py
from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship

from storefront.models.base import Base
from storefront.models.customer import utc_now
from storefront.models.order import Money


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))
    priority = Column(Integer, nullable=False, default=0)

    value_type = Column(String(20), nullable=False, default="percentage")  # percentage, fixed
    value = Column(Money, nullable=False, default=0)
    promotion_intent = Column(String(40), default="other")  # urgency, shipping_support, ...
    stacking_rule = Column(String(20), nullable=False, default="stackable")  # stackable, exclusive

    created_at = Column(DateTime(timezone=True), default=utc_now)

    targets = relationship("PromotionTarget", back_populates="promotion")
    conditions = relationship("PromotionCondition", back_populates="promotion")


class PromotionTarget(Base):
    __tablename__ = "promotion_targets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=False, index=True)
    target_type = Column(String(20), nullable=False)  # product, category
    target_id = Column(Integer, nullable=False)

    promotion = relationship("Promotion", back_populates="targets")


class PromotionCondition(Base):
    __tablename__ = "promotion_conditions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=False, index=True)
    condition_type = Column(String(30), nullable=False)  # min_cart_value, first_order_only, max_discount
    condition_value = Column(String(50))

    promotion = relationship("Promotion", back_populates="conditions")
