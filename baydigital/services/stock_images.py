"""Freepik stock-image search and quota-limited downloads."""

import os
import time
import uuid
from datetime import datetime, timedelta

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import Plan, UserDB, WebsiteAssetDB
from baydigital.models.base import as_naive_utc, utcnow
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.errors import ExternalServiceError, NotFoundError, QuotaExceededError

logger = structlog.get_logger(__name__)

FREEPIK_API_URL = "https://api.freepik.com"

ASSET_BUCKET = "website-assets"

DOWNLOAD_LIMITS = {
    Plan.STARTER.value: 5,
    Plan.PROFESSIONAL.value: 20,
    Plan.PREMIUM.value: 20,
}

DOWNLOAD_PERIOD = timedelta(days=30)


def get_download_limit(plan: str) -> int:
    return DOWNLOAD_LIMITS.get(plan, DOWNLOAD_LIMITS[Plan.STARTER.value])


def build_search_request(
    query: str,
    page: int = 1,
    limit: int = 20,
    filters: dict | None = None,
) -> tuple[str, list[tuple[str, str]]]:
    """Pick the endpoint and build query params for a search.

    Freepik only accepts filter values as arrays, hence the ``[]`` suffix.
    A filter value of "all" means no filter.

    Returns:
        (path, params) tuple
    """
    filters = filters or {}
    params = [("term", query), ("page", str(page)), ("limit", str(limit))]

    content_type = filters.get("type")
    if content_type == "icon":
        path = "/v1/icons"
    else:
        path = "/v1/resources"
        if content_type and content_type != "all":
            params.append(("filters[content_type][]", content_type))

    for name in ("orientation", "license"):
        value = filters.get(name)
        if value and value != "all":
            params.append((f"filters[{name}][]", value))

    return path, params


class StockImageService:
    """Search proxy plus per-plan monthly download quota."""

    def __init__(
        self,
        db_session: AsyncSession | None = None,
        api_key: str | None = None,
        backend_client: ManagedBackendClient | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize stock image service.

        Args:
            db_session: Database session (downloads and usage only)
            api_key: Freepik API key (defaults to FREEPIK_API_KEY env var)
            backend_client: Storage client for saving downloads
            http_client: Pre-built client (tests inject a mock transport)
        """
        self.db_session = db_session
        self.api_key = api_key or os.getenv("FREEPIK_API_KEY", "")
        self.backend_client = backend_client
        self.http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(30.0))

    async def search(
        self,
        query: str,
        page: int = 1,
        limit: int = 20,
        filters: dict | None = None,
    ) -> dict:
        """Search Freepik and return its JSON body unchanged.

        Raises:
            ExternalServiceError: With the vendor status on a non-2xx reply, or when
                Freepik cannot be reached
        """
        if not self.api_key:
            raise ExternalServiceError("freepik", "FREEPIK_API_KEY not configured")

        path, params = build_search_request(query, page, limit, filters)
        try:
            response = await self.http_client.get(
                f"{FREEPIK_API_URL}{path}",
                params=params,
                headers={"Accept": "application/json", "x-freepik-api-key": self.api_key},
            )
        except httpx.HTTPError as exc:
            logger.error("freepik_search_failed", error=str(exc), error_type=type(exc).__name__)
            raise ExternalServiceError(
                "freepik", f"Freepik API unreachable: {str(exc) or type(exc).__name__}"
            ) from exc
        if response.status_code >= 400:
            logger.error(
                "freepik_search_failed",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ExternalServiceError(
                "freepik",
                f"Freepik API error: {response.status_code} - {response.text[:200]}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError("freepik", "Freepik API returned an invalid response") from exc

        logger.info("freepik_search", query=query, path=path, page=page)
        return data

    async def _get_user(self, user_id: uuid.UUID) -> UserDB:
        user = await self.db_session.get(UserDB, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _roll_period(user: UserDB, now: datetime) -> None:
        started = as_naive_utc(user.freepik_period_start)
        if started is None or now - started >= DOWNLOAD_PERIOD:
            user.freepik_downloads_used = 0
            user.freepik_period_start = now

    async def download(
        self,
        user_id: uuid.UUID,
        resource_id: str,
        image_url: str,
        now: datetime | None = None,
    ) -> dict:
        """Copy a stock image into the tenant's asset library.

        Raises:
            QuotaExceededError: If this period's downloads are used up
            ExternalServiceError: If the image cannot be fetched or stored
        """
        now = now or utcnow()
        user = await self._get_user(user_id)
        self._roll_period(user, now)

        limit = get_download_limit(user.plan)
        used = user.freepik_downloads_used or 0
        if used >= limit:
            raise QuotaExceededError(
                "Download limit reached for this month",
                details={"used": used, "limit": limit},
            )

        try:
            response = await self.http_client.get(image_url, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.error("stock_image_fetch_failed", image_url=image_url, error=str(exc))
            raise ExternalServiceError("freepik", "Failed to download image") from exc
        if response.status_code >= 400:
            raise ExternalServiceError("freepik", "Failed to download image", response.status_code)
        content = response.content

        file_name = f"freepik-{resource_id}-{int(time.time() * 1000)}.jpg"
        backend = self.backend_client or ManagedBackendClient()
        path = await backend.upload(ASSET_BUCKET, f"{user_id}/{file_name}", content, "image/jpeg")

        self.db_session.add(
            WebsiteAssetDB(
                id=uuid.uuid4(),
                user_id=user_id,
                file_name=file_name,
                file_path=path,
                asset_type="image",
                mime_type="image/jpeg",
                file_size=len(content),
                is_active=True,
                uploaded_at=now,
            )
        )
        user.freepik_downloads_used = used + 1
        await self.db_session.flush()

        logger.info(
            "stock_image_downloaded",
            user_id=str(user_id),
            resource_id=resource_id,
            used=used + 1,
            limit=limit,
        )
        return {
            "success": True,
            "file_name": file_name,
            "public_url": backend.public_url(ASSET_BUCKET, path),
            "path": path,
        }

    async def usage(self, user_id: uuid.UUID, now: datetime | None = None) -> dict:
        """Downloads used, allowed and remaining this period."""
        user = await self._get_user(user_id)
        self._roll_period(user, now or utcnow())

        limit = get_download_limit(user.plan)
        used = user.freepik_downloads_used or 0
        return {"used": used, "limit": limit, "remaining": max(limit - used, 0)}

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()
