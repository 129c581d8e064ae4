"""Admin console: overview counts and tenant management."""

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import AdminOverview, AdminUserUpdate, UserDB
from baydigital.models.base import as_naive_utc, utcnow
from baydigital.models.notification import NotificationType
from baydigital.models.submission import FormSubmissionDB
from baydigital.models.ticket import TicketDB, TicketStatus
from baydigital.services.errors import NotFoundError
from baydigital.services.notifications import NotificationService

logger = structlog.get_logger(__name__)

RECENT_WINDOW = timedelta(days=7)


class AdminService:
    """Reads and edits across tenants; callers must already be checked as admin."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.notifications = NotificationService(db_session)

    async def _count(self, query) -> int:
        return (await self.db_session.execute(query)).scalar_one()

    async def overview(self, now: datetime | None = None) -> AdminOverview:
        """Tenant, ticket and submission counts; "recent" means the last seven days."""
        now = as_naive_utc(now) if now is not None else utcnow()
        since = now - RECENT_WINDOW

        return AdminOverview(
            total_users=await self._count(select(func.count(UserDB.id))),
            new_users_this_week=await self._count(
                select(func.count(UserDB.id)).where(UserDB.created_at >= since)
            ),
            open_tickets=await self._count(
                select(func.count(TicketDB.id)).where(TicketDB.status == TicketStatus.OPEN.value)
            ),
            recent_tickets=await self._count(
                select(func.count(TicketDB.id)).where(TicketDB.submitted_at >= since)
            ),
            total_submissions=await self._count(select(func.count(FormSubmissionDB.id))),
        )

    async def list_users(self) -> list[UserDB]:
        """Every tenant, newest signup first."""
        result = await self.db_session.execute(select(UserDB).order_by(UserDB.created_at.desc()))
        return list(result.scalars().all())

    async def get_user(self, user_id: uuid.UUID) -> UserDB:
        result = await self.db_session.execute(select(UserDB).where(UserDB.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def get_user_tickets(self, user_id: uuid.UUID) -> list[TicketDB]:
        """The tenant's tickets, newest first."""
        query = (
            select(TicketDB)
            .where(TicketDB.user_id == user_id)
            .order_by(TicketDB.submitted_at.desc())
        )
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def update_user(self, user_id: uuid.UUID, update: AdminUserUpdate) -> UserDB:
        """Apply the fields present in the update; a plan change notifies the tenant.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_user(user_id)
        previous_plan = user.plan

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db_session.flush()

        logger.info("admin_user_updated", user_id=str(user_id), fields=sorted(changes))
        if user.plan != previous_plan:
            await self.notifications.create_notification(
                user.id,
                NotificationType.STATUS_CHANGE,
                title="Your plan has changed",
                message=f"You are now on the {user.plan.capitalize()} plan",
                link="/dashboard",
            )
        return user
