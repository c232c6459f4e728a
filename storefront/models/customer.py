from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Boolean, Integer
from sqlalchemy.orm import relationship

from storefront.models.base import Base


def utc_now():
    return datetime.now(timezone.utc)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200))
    email = Column(String(255), unique=True)
    phone = Column(String(30))
    locale = Column(String(10), default="en")

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    orders = relationship("Order", back_populates="customer")


class User(Base):
    """Back-office staff account"""
    __tablename__ = "users"

    SUPPORT_ROLES = ("admin", "staff")

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(20), nullable=False, default="staff")  # admin, staff, editor
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    @property
    def can_handle_support(self) -> bool:
        return bool(self.is_active) and self.role in self.SUPPORT_ROLES

    @classmethod
    def support_agents(cls, db):
        """Query for active staff accounts that can answer support chats"""
        return db.query(cls).filter(
            cls.role.in_(cls.SUPPORT_ROLES),
            cls.is_active == True  # noqa: E712
        ).order_by(cls.id.asc())
