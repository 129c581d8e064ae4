"""In-app notification data models."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel
from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime


class NotificationType(str, Enum):
    """Notification categories shown in the bell menu."""

    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_MESSAGE = "ticket_message"
    USER_SIGNUP = "user_signup"
    STATUS_CHANGE = "status_change"
    ANALYTICS_READY = "analytics_ready"
    SITE_UPDATE = "site_update"
    NEW_TICKET = "new_ticket"
    TICKET_REPLY = "ticket_reply"


class NotificationDB(Base):
    """SQLAlchemy model for notifications table."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    link = Column(Text, nullable=True)
    read = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_user_notifications", "user_id", "created_at"),
        Index("idx_user_unread", "user_id", "read"),
    )


class Notification(BaseModel):
    """Notification as returned to the dashboard."""

    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str
    message: str | None
    link: str | None = None
    read: bool = False
    created_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True
