"""In-app notification service."""

import uuid
from datetime import datetime

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.auth.roles import RoleChecker
from baydigital.models.base import as_naive_utc, utcnow
from baydigital.models.notification import NotificationDB, NotificationType
from baydigital.services.errors import NotFoundError

logger = structlog.get_logger(__name__)


class NotificationService:
    """Creates, lists and updates notification rows.

    Every read and write is scoped to the owning user; the realtime change
    feed on the table delivers inserts to open dashboards.
    """

    def __init__(self, db_session: AsyncSession):
        """Initialize notification service.

        Args:
            db_session: Database session for persistence
        """
        self.db_session = db_session

    async def create_notification(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str | None = None,
        link: str | None = None,
    ) -> NotificationDB:
        """Insert an unread notification for one user."""
        notification = NotificationDB(
            id=uuid.uuid4(),
            user_id=user_id,
            type=NotificationType(type).value,
            title=title,
            message=message,
            link=link,
            read=False,
            created_at=utcnow(),
        )
        self.db_session.add(notification)
        await self.db_session.flush()

        logger.info(
            "notification_created",
            user_id=str(user_id),
            notification_type=notification.type,
        )
        return notification

    async def notify_admins(
        self,
        type: NotificationType,
        title: str,
        message: str | None = None,
        link: str | None = None,
    ) -> int:
        """Fan a notification out to every admin.

        Returns:
            Number of notifications created
        """
        admin_ids = await RoleChecker(self.db_session).list_admin_ids()
        for admin_id in admin_ids:
            await self.create_notification(admin_id, type, title, message, link)
        return len(admin_ids)

    async def _get_owned(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> NotificationDB:
        query = select(NotificationDB).where(
            NotificationDB.id == notification_id,
            NotificationDB.user_id == user_id,
        )
        result = await self.db_session.execute(query)
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification

    async def mark_as_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        notification = await self._get_owned(notification_id, user_id)
        notification.read = True
        await self.db_session.flush()

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification as read.

        Returns:
            Number of rows updated
        """
        stmt = (
            update(NotificationDB)
            .where(NotificationDB.user_id == user_id, NotificationDB.read.is_(False))
            .values(read=True)
        )
        result = await self.db_session.execute(stmt)
        return result.rowcount or 0

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        query = select(func.count(NotificationDB.id)).where(
            NotificationDB.user_id == user_id,
            NotificationDB.read.is_(False),
        )
        result = await self.db_session.execute(query)
        return result.scalar() or 0

    async def get_notifications(
        self,
        user_id: uuid.UUID,
        limit: int = 20,
        offset: int = 0,
    ) -> list[NotificationDB]:
        """Get a page of notifications, newest first."""
        query = (
            select(NotificationDB)
            .where(NotificationDB.user_id == user_id)
            .order_by(NotificationDB.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def get_recent_notifications(self, user_id: uuid.UUID) -> list[NotificationDB]:
        return await self.get_notifications(user_id, limit=10, offset=0)

    async def delete_notification(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        notification = await self._get_owned(notification_id, user_id)
        await self.db_session.delete(notification)
        await self.db_session.flush()

    async def delete_all_read(self, user_id: uuid.UUID) -> int:
        stmt = delete(NotificationDB).where(
            NotificationDB.user_id == user_id,
            NotificationDB.read.is_(True),
        )
        result = await self.db_session.execute(stmt)
        return result.rowcount or 0


def format_notification_time(timestamp: datetime, now: datetime | None = None) -> str:
    """Render a relative timestamp for the bell menu.

    Args:
        timestamp: Notification creation time
        now: Reference time (defaults to current UTC time)

    Returns:
        "Just now", "5m ago", "3h ago", "2d ago", or an ISO date after a week
    """
    timestamp = as_naive_utc(timestamp)
    now = as_naive_utc(now) if now is not None else utcnow()
    seconds = int((now - timestamp).total_seconds())

    if seconds < 60:
        return "Just now"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"

    days = hours // 24
    if days < 7:
        return f"{days}d ago"

    return timestamp.date().isoformat()
