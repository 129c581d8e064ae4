"""Unit tests for onboarding wizard progress."""

import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import ONBOARDING_STEPS, OnboardingProgress
from baydigital.services.errors import NotFoundError
from baydigital.services.onboarding import OnboardingService


@pytest.mark.unit
class TestOnboarding:
    """Unit tests for saving wizard steps."""

    @pytest.mark.asyncio
    async def test_intermediate_step(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user(business_name="Old Name")

        saved = await OnboardingService(async_db_session).save_progress(
            user.id, OnboardingProgress(step=3, business_name="  Harbor Cafe  ", full_name="   ")
        )

        assert saved.onboarding_step == 3
        assert saved.onboarding_complete is False
        assert saved.business_name == "Harbor Cafe"
        assert saved.full_name is None

    @pytest.mark.asyncio
    async def test_last_step_completes(self, async_db_session: AsyncSession, create_user) -> None:
        user = await create_user()

        saved = await OnboardingService(async_db_session).save_progress(
            user.id, OnboardingProgress(step=ONBOARDING_STEPS)
        )

        assert saved.onboarding_complete is True
        assert saved.onboarding_step == ONBOARDING_STEPS

    @pytest.mark.parametrize("step", [0, ONBOARDING_STEPS + 1])
    def test_step_out_of_range(self, step: int) -> None:
        with pytest.raises(ValidationError):
            OnboardingProgress(step=step)

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_db_session: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await OnboardingService(async_db_session).save_progress(uuid.uuid4(), OnboardingProgress(step=1))
