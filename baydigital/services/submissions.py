"""Website contact-form submissions."""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import SiteDB, SiteStatus
from baydigital.models.base import utcnow
from baydigital.models.submission import (
    ContactFormSubmission,
    FormSubmissionDB,
    SubmissionStatus,
)
from baydigital.services.errors import InvalidRequestError, NotFoundError

logger = structlog.get_logger(__name__)


class SubmissionService:
    """Accepts public form posts and serves them back to the site owner."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def submit(self, submission: ContactFormSubmission) -> FormSubmissionDB:
        """Store a submission for a live site.

        Field validation already happened on the pydantic model; this checks
        the target site.
        """
        site = await self.db_session.get(SiteDB, submission.site_id)
        if site is None:
            raise InvalidRequestError("Invalid site ID")
        if site.status != SiteStatus.LIVE.value:
            raise InvalidRequestError("Site is not accepting submissions")

        row = FormSubmissionDB(
            id=uuid.uuid4(),
            site_id=site.id,
            name=submission.name,
            email=submission.email,
            phone=submission.phone,
            message=submission.message,
            status=SubmissionStatus.NEW.value,
            submitted_at=utcnow(),
        )
        self.db_session.add(row)
        await self.db_session.flush()

        logger.info("form_submission_received", submission_id=str(row.id), site_id=str(site.id))
        return row

    async def list_for_user(self, user_id: uuid.UUID) -> list[FormSubmissionDB]:
        """All submissions across the tenant's sites, newest first."""
        query = (
            select(FormSubmissionDB)
            .join(SiteDB, SiteDB.id == FormSubmissionDB.site_id)
            .where(SiteDB.user_id == user_id)
            .order_by(FormSubmissionDB.submitted_at.desc())
        )
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def update_status(
        self,
        submission_id: uuid.UUID,
        user_id: uuid.UUID,
        status: SubmissionStatus,
    ) -> FormSubmissionDB:
        query = (
            select(FormSubmissionDB)
            .join(SiteDB, SiteDB.id == FormSubmissionDB.site_id)
            .where(FormSubmissionDB.id == submission_id, SiteDB.user_id == user_id)
        )
        result = await self.db_session.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Submission {submission_id} not found")

        row.status = SubmissionStatus(status).value
        await self.db_session.flush()
        return row
