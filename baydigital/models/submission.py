"""Website contact-form submission data models."""

import re
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SubmissionStatus(str, Enum):
    """Follow-up state of a submission."""

    NEW = "new"
    READ = "read"
    CONTACTED = "contacted"


class FormSubmissionDB(Base):
    """SQLAlchemy model for form_submissions table."""

    __tablename__ = "form_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    site_id = Column(UUID(as_uuid=True), ForeignKey("sites.id"), nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default=SubmissionStatus.NEW.value,
        server_default=SubmissionStatus.NEW.value,
    )
    submitted_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('new', 'read', 'contacted')",
            name="form_submissions_status_check",
        ),
        Index("idx_site_submissions", "site_id", "submitted_at"),
    )


class ContactFormSubmission(BaseModel):
    """Public contact form payload posted by a tenant's website."""

    site_id: uuid.UUID
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    phone: str | None = Field(None, max_length=50)
    message: str = Field(..., max_length=5000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must be between 1 and 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message must be between 1 and 5000 characters")
        return v


class FormSubmission(BaseModel):
    """Submission as returned to the dashboard."""

    id: uuid.UUID
    site_id: uuid.UUID
    name: str
    email: str
    phone: str | None = None
    message: str
    status: str
    submitted_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SubmissionStatusUpdate(BaseModel):
    """Request schema for updating submission follow-up state."""

    status: SubmissionStatus
