from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from .base import Base

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Subscriber(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    # Set client-side so rows inserted within the same second still order correctly
    subscribed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    unsubscribe_token = Column(String(64), unique=True, index=True, nullable=False)
