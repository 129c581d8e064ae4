"""Social media connection and scheduled post data models."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime


class SocialPlatform(str, Enum):
    """Supported publishing targets."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"


class PostStatus(str, Enum):
    """Scheduled post lifecycle."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


# ========== SQLAlchemy ORM Models ==========


class SocialConnectionDB(Base):
    """SQLAlchemy model for social_media_connections table.

    Instagram publishing rides on the Facebook page connection, so an
    Instagram business account id lives on the facebook row.
    """

    __tablename__ = "social_media_connections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    access_token = Column(Text, nullable=False)
    page_id = Column(String(100), nullable=True)
    page_name = Column(String(255), nullable=True)
    instagram_account_id = Column(String(100), nullable=True)
    instagram_username = Column(String(255), nullable=True)
    token_expires_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    updated_at = Column(UTCDateTime, nullable=True)


class SocialPostDB(Base):
    """SQLAlchemy model for social_media_posts table."""

    __tablename__ = "social_media_posts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    site_id = Column(UUID(as_uuid=True), ForeignKey("sites.id"), nullable=True)
    post_text = Column(Text, nullable=False)
    headline = Column(String(255), nullable=True)
    image_url = Column(Text, nullable=True)
    platforms = Column(JSON, nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default=PostStatus.DRAFT.value,
        server_default=PostStatus.DRAFT.value,
    )
    scheduled_at = Column(UTCDateTime, nullable=True)
    published_at = Column(UTCDateTime, nullable=True)
    facebook_post_id = Column(String(100), nullable=True)
    facebook_post_url = Column(Text, nullable=True)
    instagram_post_id = Column(String(100), nullable=True)
    instagram_post_url = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    updated_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'scheduled', 'published', 'failed')",
            name="social_media_posts_status_check",
        ),
        Index("idx_due_posts", "status", "scheduled_at"),
        Index("idx_user_posts", "user_id", "scheduled_at"),
    )


# ========== Pydantic Models ==========


class SocialPostCreate(BaseModel):
    """Request schema for scheduling (or drafting) a post."""

    post_text: str = Field(..., min_length=1, max_length=5000)
    platforms: list[SocialPlatform] = Field(..., min_length=1)
    scheduled_at: datetime | None = None
    image_url: str | None = None
    headline: str | None = Field(None, max_length=255)
    site_id: uuid.UUID | None = None

    @field_validator("platforms")
    @classmethod
    def dedupe_platforms(cls, v: list[SocialPlatform]) -> list[SocialPlatform]:
        """Keep the first occurrence of each platform."""
        seen: list[SocialPlatform] = []
        for platform in v:
            if platform not in seen:
                seen.append(platform)
        return seen

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class SocialPost(BaseModel):
    """Post as returned to the dashboard."""

    id: uuid.UUID
    user_id: uuid.UUID
    post_text: str
    headline: str | None = None
    image_url: str | None = None
    platforms: list[str]
    status: str
    scheduled_at: datetime | None = None
    published_at: datetime | None = None
    facebook_post_url: str | None = None
    instagram_post_url: str | None = None
    error_message: str | None = None
    created_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True
