"""Onboarding wizard progress for new tenants."""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import ONBOARDING_STEPS, OnboardingProgress, UserDB
from baydigital.services.errors import NotFoundError

logger = structlog.get_logger(__name__)


class OnboardingService:
    """Saves where a tenant is in the setup wizard."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def save_progress(self, user_id: uuid.UUID, progress: OnboardingProgress) -> UserDB:
        """Record the step just completed; the last step marks onboarding complete.

        Blank profile fields leave the stored values alone.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.db_session.get(UserDB, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        user.onboarding_step = progress.step
        user.onboarding_complete = progress.step == ONBOARDING_STEPS
        if progress.business_name and progress.business_name.strip():
            user.business_name = progress.business_name.strip()
        if progress.full_name and progress.full_name.strip():
            user.full_name = progress.full_name.strip()
        await self.db_session.flush()

        logger.info(
            "onboarding_progress_saved",
            user_id=str(user_id),
            step=progress.step,
            complete=user.onboarding_complete,
        )
        return user
