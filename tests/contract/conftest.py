"""Fixtures for API contract tests.

The app runs in-process over httpx's ASGI transport. Authentication and the
database session are swapped through ``app.dependency_overrides``; vendor
clients are replaced with mocks per test.
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import Header, HTTPException, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.main import app
from baydigital.api.middleware.auth import get_current_user
from baydigital.api.middleware.rate_limiter import generation_limiter, stock_image_limiter
from baydigital.models.account import UserDB
from baydigital.services.database import get_db_session


@pytest.fixture
async def current_user(create_user) -> UserDB:
    """The tenant every authenticated request acts as."""
    return await create_user(email="owner@harborcafe.example.com", business_name="Harbor Cafe")


@pytest.fixture
async def client(
    async_db_session: AsyncSession, current_user: UserDB
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with auth and database overridden."""

    async def mock_get_current_user(authorization: str = Header(None)) -> dict:
        # Contract tests accept only "Bearer test-token"
        if not authorization or authorization != "Bearer test-token":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return {"user_id": current_user.id, "email": current_user.email}

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield async_db_session

    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[get_db_session] = override_db_session
    generation_limiter.buckets.clear()
    stock_image_limiter.buckets.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


@pytest.fixture
def valid_auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-token"}
