# storefront/models/notification.py
from sqlalchemy import Column, String, DateTime, JSON, Integer, Text

from storefront.models.base import Base
from storefront.models.customer import utc_now


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_type = Column(String(20), nullable=False)  # user, customer
    recipient_id = Column(Integer, nullable=False, index=True)
    kind = Column(String(60), nullable=False)
    title = Column(String(200))
    body = Column(Text)
    data = Column(JSON, default=dict)
    read_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utc_now)
