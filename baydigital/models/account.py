"""Tenant account, role, site and asset data models."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from baydigital.models.base import Base, UTCDateTime


class Plan(str, Enum):
    """Subscription plan tiers."""

    STARTER = "starter"
    PROFESSIONAL = "professional"
    PREMIUM = "premium"


class SubscriptionStatus(str, Enum):
    """Internal subscription status stored on the tenant row."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    PENDING = "pending"


class AppRole(str, Enum):
    """Dashboard roles."""

    ADMIN = "admin"
    USER = "user"


class SiteStatus(str, Enum):
    """Lifecycle of a tenant website."""

    LIVE = "live"
    BUILDING = "building"
    MAINTENANCE = "maintenance"


# ========== SQLAlchemy ORM Models ==========


class UserDB(Base):
    """SQLAlchemy model for the users table (one row per tenant)."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    business_name = Column(String(255), nullable=True)
    plan = Column(
        String(20),
        nullable=False,
        default=Plan.STARTER.value,
        server_default=Plan.STARTER.value,
    )
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    subscription_status = Column(String(20), nullable=True)
    subscription_start_date = Column(UTCDateTime, nullable=True)
    subscription_end_date = Column(UTCDateTime, nullable=True)
    tickets_used_this_period = Column(Integer, nullable=False, default=0, server_default="0")
    billing_period_start = Column(UTCDateTime, nullable=True)
    freepik_downloads_used = Column(Integer, nullable=False, default=0, server_default="0")
    freepik_period_start = Column(UTCDateTime, nullable=True)
    onboarding_complete = Column(Boolean, nullable=False, default=False, server_default="false")
    onboarding_step = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            f"plan IN ('{Plan.STARTER.value}', '{Plan.PROFESSIONAL.value}', '{Plan.PREMIUM.value}')",
            name="users_plan_check",
        ),
    )


class UserRoleDB(Base):
    """SQLAlchemy model for user_roles table."""

    __tablename__ = "user_roles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    role = Column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="user_roles_user_role_key"),
        CheckConstraint(
            f"role IN ('{AppRole.ADMIN.value}', '{AppRole.USER.value}')",
            name="user_roles_role_check",
        ),
    )


class SiteDB(Base):
    """SQLAlchemy model for sites table."""

    __tablename__ = "sites"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    site_name = Column(String(255), nullable=False)
    site_url = Column(Text, nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default=SiteStatus.BUILDING.value,
        server_default=SiteStatus.BUILDING.value,
    )
    launched_date = Column(UTCDateTime, nullable=True)
    last_updated = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())


class WebsiteAssetDB(Base):
    """SQLAlchemy model for website_assets table."""

    __tablename__ = "website_assets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(Text, nullable=False)
    asset_type = Column(String(50), nullable=False)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    uploaded_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (Index("idx_user_assets", "user_id", "uploaded_at"),)


# ========== Pydantic Models ==========


class Account(BaseModel):
    """Tenant profile as returned to the dashboard."""

    id: uuid.UUID
    email: str
    full_name: str | None = None
    business_name: str | None = None
    plan: Plan = Plan.STARTER
    subscription_status: SubscriptionStatus | None = None
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None
    tickets_used_this_period: int = 0
    freepik_downloads_used: int = 0
    onboarding_complete: bool = False

    class Config:
        """Pydantic configuration."""

        from_attributes = True
        use_enum_values = True


class Site(BaseModel):
    """Tenant website."""

    id: uuid.UUID
    user_id: uuid.UUID
    site_name: str
    site_url: str
    status: SiteStatus
    launched_date: datetime | None = None
    submission_count: int | None = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True
        use_enum_values = True


class SubscriptionAccess(BaseModel):
    """Access flags derived from a subscription status."""

    status: SubscriptionStatus | None = None
    has_access: bool = False
    is_grace_period: bool = False
    is_blocked: bool = True

    @classmethod
    def from_status(cls, status: str | None) -> "SubscriptionAccess":
        """Derive access flags.

        Active, trialing and past-due tenants keep access; past-due is the
        grace period. Anything else, including no status at all, is blocked.
        """
        parsed = SubscriptionStatus(status) if status else None
        has_access = parsed in (
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.TRIALING,
            SubscriptionStatus.PAST_DUE,
        )
        return cls(
            status=parsed,
            has_access=has_access,
            is_grace_period=parsed == SubscriptionStatus.PAST_DUE,
            is_blocked=not has_access,
        )

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class AccountSummary(BaseModel):
    """Account plus subscription access, for the dashboard header."""

    account: Account
    access: SubscriptionAccess
    sites: list[Site] = Field(default_factory=list)


ONBOARDING_STEPS = 6


class SiteCreate(BaseModel):
    """Request schema for adding a site."""

    site_name: str = Field(..., min_length=1, max_length=255)
    site_url: str = Field(..., min_length=1, max_length=2048)
    status: SiteStatus = SiteStatus.BUILDING

    @field_validator("site_name", "site_url")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class OnboardingProgress(BaseModel):
    """Wizard step just saved; reaching the last step completes onboarding."""

    step: int = Field(..., ge=1, le=ONBOARDING_STEPS)
    business_name: str | None = Field(None, max_length=255)
    full_name: str | None = Field(None, max_length=255)


class AdminUser(Account):
    """Tenant row as listed in the admin console."""

    stripe_customer_id: str | None = None
    onboarding_step: int = 0
    created_at: datetime | None = None


class AdminUserUpdate(BaseModel):
    """Fields an admin may change on a tenant; omitted or null fields are untouched."""

    full_name: str | None = Field(None, max_length=255)
    business_name: str | None = Field(None, max_length=255)
    plan: Plan | None = None
    subscription_status: SubscriptionStatus | None = None
    onboarding_complete: bool | None = None

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class AdminOverview(BaseModel):
    """Headline counts for the admin dashboard."""

    total_users: int
    new_users_this_week: int
    open_tickets: int
    recent_tickets: int
    total_submissions: int
