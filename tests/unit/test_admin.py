"""Unit tests for the admin console service."""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import AdminUserUpdate
from baydigital.models.notification import NotificationDB
from baydigital.models.submission import FormSubmissionDB
from baydigital.models.ticket import TicketDB
from baydigital.services.admin import AdminService
from baydigital.services.errors import NotFoundError

NOW = datetime(2026, 5, 20, 12, 0, 0)


async def _ticket(session: AsyncSession, user, status: str, submitted_at: datetime) -> TicketDB:
    ticket = TicketDB(
        id=uuid.uuid4(),
        user_id=user.id,
        title="Update hours",
        description="We now open at 7am.",
        priority="medium",
        status=status,
        submitted_at=submitted_at,
    )
    session.add(ticket)
    await session.flush()
    return ticket


@pytest.mark.unit
class TestOverview:
    """Unit tests for the admin overview counts."""

    @pytest.mark.asyncio
    async def test_counts(
        self, async_db_session: AsyncSession, create_user, create_site
    ) -> None:
        veteran = await create_user(created_at=NOW - timedelta(days=60))
        newcomer = await create_user(created_at=NOW - timedelta(days=2))
        await _ticket(async_db_session, veteran, "open", NOW - timedelta(days=20))
        await _ticket(async_db_session, newcomer, "open", NOW - timedelta(days=1))
        await _ticket(async_db_session, newcomer, "completed", NOW - timedelta(days=3))
        site = await create_site(newcomer)
        async_db_session.add(
            FormSubmissionDB(
                id=uuid.uuid4(),
                site_id=site.id,
                name="Dana",
                email="dana@example.com",
                message="Hello",
                submitted_at=NOW,
            )
        )
        await async_db_session.flush()

        overview = await AdminService(async_db_session).overview(now=NOW)

        assert overview.model_dump() == {
            "total_users": 2,
            "new_users_this_week": 1,
            "open_tickets": 2,
            "recent_tickets": 2,
            "total_submissions": 1,
        }

    @pytest.mark.asyncio
    async def test_empty_database(self, async_db_session: AsyncSession) -> None:
        overview = await AdminService(async_db_session).overview(now=NOW)

        assert overview.total_users == 0
        assert overview.total_submissions == 0


@pytest.mark.unit
class TestUserManagement:
    """Unit tests for listing and editing tenants."""

    @pytest.mark.asyncio
    async def test_list_users_newest_first(self, async_db_session: AsyncSession, create_user) -> None:
        older = await create_user(created_at=NOW - timedelta(days=10))
        newer = await create_user(created_at=NOW - timedelta(days=1))

        users = await AdminService(async_db_session).list_users()

        assert [u.id for u in users] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_user_tickets_newest_first(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user()
        first = await _ticket(async_db_session, user, "open", NOW - timedelta(days=5))
        second = await _ticket(async_db_session, user, "completed", NOW - timedelta(days=1))
        await _ticket(async_db_session, await create_user(), "open", NOW)

        tickets = await AdminService(async_db_session).get_user_tickets(user.id)

        assert [t.id for t in tickets] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_db_session: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await AdminService(async_db_session).get_user(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_plan_change_notifies_tenant(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user(plan="starter", full_name="Sam Harbor")
        service = AdminService(async_db_session)

        updated = await service.update_user(
            user.id, AdminUserUpdate(plan="professional", business_name="Harbor Cafe", full_name=None)
        )

        assert updated.plan == "professional"
        assert updated.business_name == "Harbor Cafe"
        assert updated.full_name == "Sam Harbor"
        notifications = (
            await async_db_session.execute(select(NotificationDB).where(NotificationDB.user_id == user.id))
        ).scalars().all()
        assert [n.type for n in notifications] == ["status_change"]
        assert notifications[0].message == "You are now on the Professional plan"

    @pytest.mark.asyncio
    async def test_same_plan_is_silent(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user(plan="premium")

        await AdminService(async_db_session).update_user(
            user.id, AdminUserUpdate(plan="premium", onboarding_complete=True)
        )

        assert user.onboarding_complete is True
        notifications = (await async_db_session.execute(select(NotificationDB))).scalars().all()
        assert notifications == []
