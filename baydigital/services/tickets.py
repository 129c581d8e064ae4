"""Support ticketing: tickets, threaded messages and read markers."""

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import Plan, UserDB
from baydigital.models.base import as_naive_utc, utcnow
from baydigital.models.notification import NotificationType
from baydigital.models.ticket import (
    PRIORITY_ORDER,
    TicketCreate,
    TicketDB,
    TicketMessage,
    TicketMessageDB,
    TicketMessageReadDB,
    TicketPriority,
    TicketStatus,
    TicketUpdate,
)
from baydigital.services.errors import InvalidRequestError, NotFoundError, QuotaExceededError
from baydigital.services.notifications import NotificationService

logger = structlog.get_logger(__name__)

# Tickets per billing period; None means unlimited
TICKET_LIMITS: dict[str, int | None] = {
    Plan.STARTER.value: 3,
    Plan.PROFESSIONAL.value: 10,
    Plan.PREMIUM.value: None,
}

BILLING_PERIOD = timedelta(days=30)

CHANGE_REQUEST_TITLE = "Site change request"


def get_ticket_limit(plan: str) -> int | None:
    """Ticket allowance for a plan (unknown plans get the starter limit)."""
    return TICKET_LIMITS.get(plan, TICKET_LIMITS[Plan.STARTER.value])


def sender_display_name(user: UserDB | None) -> str:
    """Business name, then full name, then email."""
    if user is None:
        return "Unknown"
    return user.business_name or user.full_name or user.email or "Unknown"


def sort_admin_queue(tickets: list[TicketDB]) -> list[TicketDB]:
    """Open tickets first, then by priority, then newest first."""
    newest_first = sorted(
        tickets,
        key=lambda t: as_naive_utc(t.submitted_at) or datetime.min,
        reverse=True,
    )
    return sorted(
        newest_first,
        key=lambda t: (
            0 if t.status == TicketStatus.OPEN.value else 1,
            PRIORITY_ORDER.get(t.priority, PRIORITY_ORDER[TicketPriority.NORMAL.value]),
        ),
    )


class TicketService:
    """Ticket lifecycle for tenants and the admin queue."""

    def __init__(
        self,
        db_session: AsyncSession,
        notification_service: NotificationService | None = None,
    ):
        """Initialize ticket service.

        Args:
            db_session: Database session for persistence
            notification_service: Notification fan-out (defaults to one on the same session)
        """
        self.db_session = db_session
        self.notifications = notification_service or NotificationService(db_session)

    async def _get_user(self, user_id: uuid.UUID) -> UserDB:
        user = await self.db_session.get(UserDB, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _roll_period(user: UserDB, now: datetime) -> None:
        started = as_naive_utc(user.billing_period_start)
        if started is None or now - started >= BILLING_PERIOD:
            user.tickets_used_this_period = 0
            user.billing_period_start = now

    async def create_ticket(
        self,
        user_id: uuid.UUID,
        request: TicketCreate,
        now: datetime | None = None,
    ) -> TicketDB:
        """Open a ticket within the plan's per-period allowance.

        Raises:
            QuotaExceededError: If the tenant used up this period's tickets
        """
        now = now or utcnow()
        user = await self._get_user(user_id)
        self._roll_period(user, now)

        limit = get_ticket_limit(user.plan)
        used = user.tickets_used_this_period or 0
        if limit is not None and used >= limit:
            raise QuotaExceededError(
                f"Ticket limit reached for this period ({limit} on the {user.plan} plan)",
                details={"limit": limit, "used": used},
            )

        ticket = TicketDB(
            id=uuid.uuid4(),
            user_id=user_id,
            title=request.title,
            description=request.description,
            priority=TicketPriority(request.priority).value,
            status=TicketStatus.OPEN.value,
            file_urls=list(request.file_urls) or None,
            submitted_at=now,
        )
        self.db_session.add(ticket)
        user.tickets_used_this_period = used + 1
        await self.db_session.flush()

        requester = user.business_name or user.email
        await self.notifications.notify_admins(
            NotificationType.NEW_TICKET,
            title=f"New ticket: {ticket.title}",
            message=f"{requester} opened a {ticket.priority} priority ticket",
            link=f"/admin/tickets/{ticket.id}",
        )

        logger.info(
            "ticket_created",
            ticket_id=str(ticket.id),
            user_id=str(user_id),
            priority=ticket.priority,
        )
        return ticket

    async def create_change_request(self, user_id: uuid.UUID, description: str) -> TicketDB:
        """File a website change request as a normal-priority ticket."""
        return await self.create_ticket(
            user_id,
            TicketCreate(title=CHANGE_REQUEST_TITLE, description=description),
        )

    async def get_ticket(
        self, ticket_id: uuid.UUID, user_id: uuid.UUID, is_admin: bool = False
    ) -> TicketDB:
        """Get a ticket visible to the caller (owner, or any ticket for admins)."""
        ticket = await self.db_session.get(TicketDB, ticket_id)
        if ticket is None or (not is_admin and ticket.user_id != user_id):
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(self, user_id: uuid.UUID) -> list[TicketDB]:
        query = (
            select(TicketDB)
            .where(TicketDB.user_id == user_id)
            .order_by(TicketDB.submitted_at.desc())
        )
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def admin_list_tickets(self, status: TicketStatus | None = None) -> list[TicketDB]:
        query = select(TicketDB)
        if status:
            query = query.where(TicketDB.status == TicketStatus(status).value)
        result = await self.db_session.execute(query)
        return sort_admin_queue(list(result.scalars().all()))

    async def update_ticket(self, ticket_id: uuid.UUID, update: TicketUpdate) -> TicketDB:
        """Admin update; a status change notifies the ticket owner."""
        ticket = await self.db_session.get(TicketDB, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")

        previous_status = ticket.status
        if update.priority is not None:
            ticket.priority = TicketPriority(update.priority).value
        if update.admin_notes is not None:
            ticket.admin_notes = update.admin_notes
        if update.status is not None:
            ticket.status = TicketStatus(update.status).value
            if ticket.status == TicketStatus.COMPLETED.value and ticket.completed_at is None:
                ticket.completed_at = utcnow()

        await self.db_session.flush()

        if ticket.status != previous_status:
            label = ticket.status.replace("_", " ")
            await self.notifications.create_notification(
                ticket.user_id,
                NotificationType.TICKET_UPDATED,
                title=f"Ticket updated: {ticket.title}",
                message=f"Status changed to {label}",
                link=f"/tickets/{ticket.id}",
            )
            logger.info(
                "ticket_status_changed",
                ticket_id=str(ticket.id),
                from_status=previous_status,
                to_status=ticket.status,
            )

        return ticket

    # ========== Messaging ==========

    async def add_message(
        self,
        ticket_id: uuid.UUID,
        user_id: uuid.UUID,
        text: str,
        is_admin: bool = False,
    ) -> TicketMessageDB:
        """Append a reply to the thread and notify the other side."""
        text = (text or "").strip()
        if not text:
            raise InvalidRequestError("Message must not be empty")
        if len(text) > 5000:
            raise InvalidRequestError("Message must be at most 5000 characters")

        ticket = await self.get_ticket(ticket_id, user_id, is_admin=is_admin)
        now = utcnow()

        message = TicketMessageDB(
            id=uuid.uuid4(),
            ticket_id=ticket.id,
            user_id=user_id,
            message=text,
            is_admin=is_admin,
            created_at=now,
        )
        self.db_session.add(message)
        ticket.last_message_at = now
        await self.db_session.flush()

        preview = text if len(text) <= 120 else text[:117] + "..."
        if is_admin:
            await self.notifications.create_notification(
                ticket.user_id,
                NotificationType.TICKET_REPLY,
                title=f"New reply on: {ticket.title}",
                message=preview,
                link=f"/tickets/{ticket.id}",
            )
        else:
            await self.notifications.notify_admins(
                NotificationType.TICKET_MESSAGE,
                title=f"New message on: {ticket.title}",
                message=preview,
                link=f"/admin/tickets/{ticket.id}",
            )

        return message

    async def list_messages(
        self, ticket_id: uuid.UUID, user_id: uuid.UUID, is_admin: bool = False
    ) -> list[TicketMessage]:
        """Thread in chronological order with sender display names."""
        await self.get_ticket(ticket_id, user_id, is_admin=is_admin)

        query = (
            select(TicketMessageDB, UserDB)
            .outerjoin(UserDB, UserDB.id == TicketMessageDB.user_id)
            .where(TicketMessageDB.ticket_id == ticket_id)
            .order_by(TicketMessageDB.created_at.asc())
        )
        result = await self.db_session.execute(query)

        messages = []
        for row, sender in result.all():
            messages.append(
                TicketMessage(
                    id=row.id,
                    ticket_id=row.ticket_id,
                    user_id=row.user_id,
                    message=row.message,
                    is_admin=row.is_admin,
                    created_at=row.created_at,
                    sender_name=sender_display_name(sender),
                )
            )
        return messages

    async def _latest_message(self, ticket_id: uuid.UUID) -> TicketMessageDB | None:
        query = (
            select(TicketMessageDB)
            .where(TicketMessageDB.ticket_id == ticket_id)
            .order_by(TicketMessageDB.created_at.desc())
            .limit(1)
        )
        result = await self.db_session.execute(query)
        return result.scalar_one_or_none()

    async def _read_marker(
        self, ticket_id: uuid.UUID, user_id: uuid.UUID
    ) -> TicketMessageReadDB | None:
        query = select(TicketMessageReadDB).where(
            TicketMessageReadDB.ticket_id == ticket_id,
            TicketMessageReadDB.user_id == user_id,
        )
        result = await self.db_session.execute(query)
        return result.scalar_one_or_none()

    async def mark_read(
        self, ticket_id: uuid.UUID, user_id: uuid.UUID, is_admin: bool = False
    ) -> TicketMessageReadDB:
        """Move the caller's read marker to the latest message."""
        await self.get_ticket(ticket_id, user_id, is_admin=is_admin)
        latest = await self._latest_message(ticket_id)
        marker = await self._read_marker(ticket_id, user_id)

        if marker is None:
            marker = TicketMessageReadDB(id=uuid.uuid4(), ticket_id=ticket_id, user_id=user_id)
            self.db_session.add(marker)

        marker.last_read_at = utcnow()
        marker.last_read_message_id = latest.id if latest else None
        await self.db_session.flush()
        return marker

    async def unread_count(
        self, ticket_id: uuid.UUID, user_id: uuid.UUID, is_admin: bool = False
    ) -> int:
        """Messages from the other side newer than the caller's read marker."""
        await self.get_ticket(ticket_id, user_id, is_admin=is_admin)
        marker = await self._read_marker(ticket_id, user_id)

        query = select(func.count(TicketMessageDB.id)).where(
            TicketMessageDB.ticket_id == ticket_id,
            TicketMessageDB.is_admin.is_(not is_admin),
        )
        if marker is not None:
            query = query.where(TicketMessageDB.created_at > marker.last_read_at)

        result = await self.db_session.execute(query)
        return result.scalar() or 0
