"""Scheduled social media posts and the due-post processor."""

import json
import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.base import as_naive_utc, utcnow
from baydigital.models.social import (
    PostStatus,
    SocialConnectionDB,
    SocialPlatform,
    SocialPostCreate,
    SocialPostDB,
)
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.errors import BayDigitalError, InvalidRequestError, NotFoundError
from baydigital.services.social_publisher import GraphPublisher, ImageStager

logger = structlog.get_logger(__name__)

DUE_BATCH_SIZE = 10


def due_posts_query(now: datetime, limit: int = DUE_BATCH_SIZE):
    """Scheduled posts whose time has come, soonest first.

    Rows are locked for the rest of the transaction and rows locked by a
    concurrent run are skipped, so overlapping cron calls never share a post.
    """
    return (
        select(SocialPostDB)
        .where(
            SocialPostDB.status == PostStatus.SCHEDULED.value,
            SocialPostDB.scheduled_at <= now,
        )
        .order_by(SocialPostDB.scheduled_at.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
    )


class SocialPostService:
    """Tenant-facing scheduling plus the cron-driven publisher."""

    def __init__(
        self,
        db_session: AsyncSession,
        publisher: GraphPublisher | None = None,
        image_stager: ImageStager | None = None,
    ):
        """Initialize social post service.

        Args:
            db_session: Database session for persistence
            publisher: Graph API client
            image_stager: Copies post images into public storage before publishing
        """
        self.db_session = db_session
        self._publisher = publisher
        self._image_stager = image_stager

    @property
    def publisher(self) -> GraphPublisher:
        if self._publisher is None:
            self._publisher = GraphPublisher()
        return self._publisher

    @property
    def image_stager(self) -> ImageStager:
        if self._image_stager is None:
            self._image_stager = ImageStager(ManagedBackendClient())
        return self._image_stager

    def _new_post(self, user_id: uuid.UUID, request: SocialPostCreate, status: PostStatus) -> SocialPostDB:
        now = utcnow()
        return SocialPostDB(
            id=uuid.uuid4(),
            user_id=user_id,
            site_id=request.site_id,
            post_text=request.post_text,
            headline=request.headline,
            image_url=request.image_url,
            platforms=list(request.platforms),
            status=status.value,
            scheduled_at=as_naive_utc(request.scheduled_at),
            created_at=now,
            updated_at=now,
        )

    async def schedule_post(
        self,
        user_id: uuid.UUID,
        request: SocialPostCreate,
        now: datetime | None = None,
    ) -> SocialPostDB:
        """Queue a post for publishing at scheduled_at.

        Raises:
            InvalidRequestError: Missing/past schedule time, or Instagram without an image
        """
        now = now or utcnow()
        if request.scheduled_at is None:
            raise InvalidRequestError("A scheduled time is required")
        if as_naive_utc(request.scheduled_at) <= now:
            raise InvalidRequestError("Scheduled time must be in the future")
        if SocialPlatform.INSTAGRAM.value in request.platforms and not request.image_url:
            raise InvalidRequestError("Instagram posts require an image")

        post = self._new_post(user_id, request, PostStatus.SCHEDULED)
        self.db_session.add(post)
        await self.db_session.flush()

        logger.info(
            "social_post_scheduled",
            post_id=str(post.id),
            user_id=str(user_id),
            platforms=post.platforms,
            scheduled_at=post.scheduled_at.isoformat(),
        )
        return post

    async def save_draft(self, user_id: uuid.UUID, request: SocialPostCreate) -> SocialPostDB:
        post = self._new_post(user_id, request, PostStatus.DRAFT)
        self.db_session.add(post)
        await self.db_session.flush()
        return post

    async def list_scheduled(self, user_id: uuid.UUID) -> list[SocialPostDB]:
        """Scheduled and dated draft posts, soonest first."""
        query = (
            select(SocialPostDB)
            .where(
                SocialPostDB.user_id == user_id,
                SocialPostDB.status.in_([PostStatus.SCHEDULED.value, PostStatus.DRAFT.value]),
                SocialPostDB.scheduled_at.is_not(None),
            )
            .order_by(SocialPostDB.scheduled_at.asc())
        )
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def delete_post(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        query = select(SocialPostDB).where(
            SocialPostDB.id == post_id,
            SocialPostDB.user_id == user_id,
        )
        result = await self.db_session.execute(query)
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")

        await self.db_session.delete(post)
        await self.db_session.flush()
        logger.info("social_post_deleted", post_id=str(post_id), user_id=str(user_id))

    # ========== Publishing ==========

    async def process_due_posts(self, now: datetime | None = None, limit: int = DUE_BATCH_SIZE) -> dict:
        """Publish scheduled posts whose time has come.

        Each post is handled independently; a failure marks that post failed
        and the batch carries on.

        Returns:
            Dict with processed count and per-post results
        """
        now = as_naive_utc(now) if now is not None else utcnow()
        result = await self.db_session.execute(due_posts_query(now, limit))
        posts = list(result.scalars().all())

        if not posts:
            logger.info("no_due_posts")
            return {"processed": 0, "results": []}

        results = []
        for post in posts:
            outcome = await self._publish_isolated(post)
            results.append({"post_id": str(post.id), **outcome})

        logger.info("due_posts_processed", processed=len(results))
        return {"processed": len(results), "results": results}

    async def publish_now(self, user_id: uuid.UUID, request: SocialPostCreate) -> tuple[SocialPostDB, dict]:
        """Publish a post immediately and record it.

        Returns:
            The stored post and the per-platform outcome

        Raises:
            InvalidRequestError: Instagram without an image
        """
        if SocialPlatform.INSTAGRAM.value in request.platforms and not request.image_url:
            raise InvalidRequestError("Instagram posts require an image")

        post = self._new_post(user_id, request, PostStatus.SCHEDULED)
        post.scheduled_at = post.created_at
        self.db_session.add(post)
        await self.db_session.flush()

        outcome = await self._publish_isolated(post)
        return post, outcome

    async def _publish_isolated(self, post: SocialPostDB) -> dict:
        """Publish one post; any failure marks only this post failed."""
        try:
            outcome = await self._publish(post)
        except BayDigitalError as exc:
            logger.warning("social_post_failed", post_id=str(post.id), error=exc.message)
            outcome = self._mark_failed(post, exc.message)
        except Exception as exc:
            logger.error(
                "social_post_failed",
                post_id=str(post.id),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            outcome = self._mark_failed(post, f"Unexpected error: {type(exc).__name__}")

        await self.db_session.flush()
        return outcome

    @staticmethod
    def _mark_failed(post: SocialPostDB, message: str) -> dict:
        post.status = PostStatus.FAILED.value
        post.error_message = message
        post.updated_at = utcnow()
        return {"success": False, "error": message}

    async def _publish(self, post: SocialPostDB) -> dict:
        query = select(SocialConnectionDB).where(SocialConnectionDB.user_id == post.user_id)
        result = await self.db_session.execute(query)
        connections = list(result.scalars().all())
        if not connections:
            raise InvalidRequestError("No social media accounts connected")

        facebook = next(
            (c for c in connections if c.platform == SocialPlatform.FACEBOOK.value), None
        )
        instagram = next(
            (
                c
                for c in connections
                if c.platform == SocialPlatform.FACEBOOK.value and c.instagram_account_id
            ),
            None,
        )

        public_url, staged_path = None, None
        if post.image_url:
            public_url, staged_path = await self.image_stager.stage(post.image_url, str(post.user_id))

        outcome = {"success": True, "facebook": None, "instagram": None}
        try:
            if SocialPlatform.FACEBOOK.value in post.platforms:
                outcome["facebook"] = await self._attempt(
                    facebook,
                    "Facebook account not connected",
                    lambda conn: self.publisher.post_to_facebook(conn, post.post_text, public_url),
                )
            if SocialPlatform.INSTAGRAM.value in post.platforms:
                if not public_url:
                    outcome["instagram"] = {"error": "Instagram posts require an image"}
                else:
                    outcome["instagram"] = await self._attempt(
                        instagram,
                        "Instagram account not connected to Facebook Page",
                        lambda conn: self.publisher.post_to_instagram(conn, post.post_text, public_url),
                    )
        finally:
            await self.image_stager.cleanup(staged_path)

        for platform in ("facebook", "instagram"):
            if outcome[platform] is not None and not outcome[platform].get("success"):
                outcome["success"] = False

        fb = outcome["facebook"] or {}
        ig = outcome["instagram"] or {}
        post.status = PostStatus.PUBLISHED.value if outcome["success"] else PostStatus.FAILED.value
        post.facebook_post_id = fb.get("post_id")
        post.facebook_post_url = fb.get("post_url")
        post.instagram_post_id = ig.get("post_id")
        post.instagram_post_url = ig.get("post_url")
        post.published_at = utcnow() if outcome["success"] else None
        post.error_message = None if outcome["success"] else json.dumps(outcome)
        post.updated_at = utcnow()

        logger.info(
            "social_post_processed",
            post_id=str(post.id),
            status=post.status,
        )
        return outcome

    @staticmethod
    async def _attempt(connection, missing_message: str, publish) -> dict:
        if connection is None:
            return {"error": missing_message}
        try:
            return await publish(connection)
        except BayDigitalError as exc:
            return {"error": exc.message}
