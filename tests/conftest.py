"""Shared pytest fixtures and configuration.

This module provides common fixtures used across all test types.
"""

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

# Import models to register them with Base.metadata
import baydigital.models  # noqa: F401
from baydigital.models.account import AppRole, SiteDB, SiteStatus, UserDB, UserRoleDB
from baydigital.models.base import Base


@pytest.fixture(scope="session")
def test_database_url() -> str:
    """Provide test database URL.

    Uses file-based SQLite unless TEST_DATABASE_URL points at PostgreSQL.
    """
    db_url = os.getenv("TEST_DATABASE_URL")
    if db_url:
        return db_url

    return f"sqlite+aiosqlite:///{tempfile.gettempdir()}/test_baydigital.db"


@pytest.fixture(scope="function")
async def async_db_session(test_database_url: str) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session for testing.

    Creates tables before each test and drops them after.
    """
    engine = create_async_engine(test_database_url, echo=False, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def create_user(async_db_session: AsyncSession):
    """Factory for tenant rows; admin=True also grants the admin role."""

    async def _create(
        email: str | None = None,
        plan: str = "starter",
        admin: bool = False,
        **fields,
    ) -> UserDB:
        user = UserDB(
            id=uuid.uuid4(),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            plan=plan,
            **fields,
        )
        async_db_session.add(user)
        if admin:
            async_db_session.add(
                UserRoleDB(id=uuid.uuid4(), user_id=user.id, role=AppRole.ADMIN.value)
            )
        await async_db_session.flush()
        return user

    return _create


@pytest.fixture
def create_site(async_db_session: AsyncSession):
    """Factory for tenant websites."""

    async def _create(user: UserDB, status: str = SiteStatus.LIVE.value, **fields) -> SiteDB:
        site = SiteDB(
            id=uuid.uuid4(),
            user_id=user.id,
            site_name=fields.pop("site_name", "Harbor Cafe"),
            site_url=fields.pop("site_url", "https://harborcafe.example.com"),
            status=status,
            **fields,
        )
        async_db_session.add(site)
        await async_db_session.flush()
        return site

    return _create


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"

