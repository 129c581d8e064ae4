"""Support ticket and ticket messaging data models."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime


class TicketStatus(str, Enum):
    """Support ticket status."""

    OPEN = "open"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Support ticket priority."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


# Admin queue ordering
PRIORITY_ORDER = {
    TicketPriority.URGENT.value: 0,
    TicketPriority.HIGH.value: 1,
    TicketPriority.NORMAL.value: 2,
    TicketPriority.LOW.value: 3,
}


# ========== SQLAlchemy ORM Models ==========


class TicketDB(Base):
    """SQLAlchemy model for update_tickets table."""

    __tablename__ = "update_tickets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(
        String(20),
        nullable=False,
        default=TicketPriority.NORMAL.value,
        server_default=TicketPriority.NORMAL.value,
    )
    status = Column(
        String(20),
        nullable=False,
        default=TicketStatus.OPEN.value,
        server_default=TicketStatus.OPEN.value,
    )
    file_urls = Column(JSON, nullable=True)
    admin_notes = Column(Text, nullable=True)
    assigned_to = Column(UUID(as_uuid=True), nullable=True)
    submitted_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    completed_at = Column(UTCDateTime, nullable=True)
    last_message_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('open', 'pending', 'in_progress', 'completed', 'closed')",
            name="update_tickets_status_check",
        ),
        CheckConstraint(
            "priority IN ('urgent', 'high', 'normal', 'low')",
            name="update_tickets_priority_check",
        ),
    )


class TicketMessageDB(Base):
    """SQLAlchemy model for ticket_messages table."""

    __tablename__ = "ticket_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey("update_tickets.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("length(message) <= 5000", name="ticket_messages_length_check"),
        Index("idx_ticket_messages", "ticket_id", "created_at"),
    )


class TicketMessageReadDB(Base):
    """SQLAlchemy model for ticket_message_reads table (one marker per reader)."""

    __tablename__ = "ticket_message_reads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ticket_id = Column(UUID(as_uuid=True), ForeignKey("update_tickets.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    last_read_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    last_read_message_id = Column(
        UUID(as_uuid=True), ForeignKey("ticket_messages.id"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("ticket_id", "user_id", name="ticket_message_reads_ticket_user_key"),
    )


# ========== Pydantic Models ==========


class TicketCreate(BaseModel):
    """Request schema for opening a ticket."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    priority: TicketPriority = TicketPriority.NORMAL
    file_urls: list[str] = Field(default_factory=list, max_length=10)

    @field_validator("title", "description")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Reject whitespace-only text."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class TicketUpdate(BaseModel):
    """Admin update of a ticket."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    admin_notes: str | None = Field(None, max_length=5000)


class Ticket(BaseModel):
    """Ticket as returned to the dashboard."""

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    priority: str
    status: str
    file_urls: list[str] | None = None
    admin_notes: str | None = None
    submitted_at: datetime
    completed_at: datetime | None = None
    last_message_at: datetime | None = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class TicketMessageCreate(BaseModel):
    """Request schema for a ticket reply."""

    message: str = Field(..., min_length=1, max_length=5000)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Reject whitespace-only replies."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class TicketMessage(BaseModel):
    """Single message in a ticket thread."""

    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID
    message: str
    is_admin: bool
    created_at: datetime
    sender_name: str = "Unknown"
