"""Ledger of payment-processor webhook events already applied."""

from enum import Enum

from sqlalchemy import Column, Index, String
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime


class WebhookOutcome(str, Enum):
    """What the handler did with an event."""

    APPLIED = "applied"
    IGNORED = "ignored"
    UNMATCHED = "unmatched"


class ProcessedWebhookEventDB(Base):
    """SQLAlchemy model for processed_webhook_events table (append-only).

    The vendor event id is the primary key; a redelivered event collides on
    insert and is acknowledged without being applied twice.
    """

    __tablename__ = "processed_webhook_events"

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    customer_id = Column(String(255), nullable=True)
    outcome = Column(String(20), nullable=False)
    processed_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (Index("idx_webhook_customer", "customer_id", "processed_at"),)
