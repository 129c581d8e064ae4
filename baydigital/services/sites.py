"""Tenant websites: listing with inbox counts, adding and removing sites."""

import uuid

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import Site, SiteCreate, SiteDB, SiteStatus, UserDB
from baydigital.models.base import utcnow
from baydigital.models.social import SocialPostDB
from baydigital.models.submission import FormSubmissionDB
from baydigital.services.errors import NotFoundError

logger = structlog.get_logger(__name__)


class SiteService:
    """Site management for tenants and for admins acting on a tenant."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def list_sites(self, user_id: uuid.UUID) -> list[Site]:
        """Sites owned by the user, newest first, with their submission counts."""
        query = (
            select(SiteDB)
            .where(SiteDB.user_id == user_id)
            .order_by(SiteDB.created_at.desc(), SiteDB.site_name.asc())
        )
        result = await self.db_session.execute(query)
        sites = list(result.scalars().all())
        if not sites:
            return []

        count_query = (
            select(FormSubmissionDB.site_id, func.count(FormSubmissionDB.id))
            .where(FormSubmissionDB.site_id.in_([site.id for site in sites]))
            .group_by(FormSubmissionDB.site_id)
        )
        counts = dict((await self.db_session.execute(count_query)).all())

        return [
            Site.model_validate(site).model_copy(update={"submission_count": counts.get(site.id, 0)})
            for site in sites
        ]

    async def create_site(self, user_id: uuid.UUID, request: SiteCreate) -> SiteDB:
        """Add a site for the user; a site created live is stamped as launched.

        Raises:
            NotFoundError: If the user does not exist
        """
        if await self.db_session.get(UserDB, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        now = utcnow()
        site = SiteDB(
            id=uuid.uuid4(),
            user_id=user_id,
            site_name=request.site_name,
            site_url=request.site_url,
            status=request.status,
            launched_date=now if request.status == SiteStatus.LIVE.value else None,
            last_updated=now,
            created_at=now,
        )
        self.db_session.add(site)
        await self.db_session.flush()

        logger.info("site_created", site_id=str(site.id), user_id=str(user_id), status=site.status)
        return site

    async def delete_site(self, site_id: uuid.UUID, user_id: uuid.UUID | None = None) -> None:
        """Remove a site with its form submissions; posts keep their text but lose the link.

        Args:
            site_id: Site to remove
            user_id: Required owner; None for admin deletes

        Raises:
            NotFoundError: If the site does not exist or is not the user's
        """
        site = await self.db_session.get(SiteDB, site_id)
        if site is None or (user_id is not None and site.user_id != user_id):
            raise NotFoundError(f"Site {site_id} not found")
        owner_id = site.user_id

        await self.db_session.execute(
            delete(FormSubmissionDB).where(FormSubmissionDB.site_id == site_id)
        )
        await self.db_session.execute(
            update(SocialPostDB).where(SocialPostDB.site_id == site_id).values(site_id=None)
        )
        await self.db_session.delete(site)
        await self.db_session.flush()

        logger.info("site_deleted", site_id=str(site_id), owner_id=str(owner_id))
