"""Facebook/Instagram Graph API publishing and image staging."""

import base64
import binascii
import re
import time

import httpx
import structlog

from baydigital.models.social import SocialConnectionDB
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.errors import BayDigitalError, ExternalServiceError, InvalidRequestError

logger = structlog.get_logger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0"

SOCIAL_IMAGE_BUCKET = "social-media-images"

DATA_URL_PATTERN = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)


class ImageStager:
    """Puts post images somewhere the Graph API can fetch them.

    Instagram only accepts publicly reachable URLs, so inline and external
    images are copied into a public bucket for the duration of a publish.
    """

    def __init__(
        self,
        backend_client: ManagedBackendClient,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.backend_client = backend_client
        self.http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(30.0))

    async def stage(self, image_url: str, user_id: str) -> tuple[str, str | None]:
        """Return (public_url, staged_path); staged_path is None if nothing was uploaded.

        Raises:
            InvalidRequestError: For a malformed data: URL
        """
        if self.backend_client.is_storage_url(image_url):
            return image_url, None

        if image_url.startswith("data:image"):
            match = DATA_URL_PATTERN.match(image_url)
            if not match:
                raise InvalidRequestError("Invalid base64 image format")
            ext, encoded = match.groups()
            try:
                content = base64.b64decode(encoded)
            except (binascii.Error, ValueError) as exc:
                raise InvalidRequestError("Invalid base64 image format") from exc
            return await self._upload(user_id, content, f"image/{ext}", ext)

        try:
            response = await self.http_client.get(image_url, follow_redirects=True)
            response.raise_for_status()
            content_type = response.headers.get("content-type") or "image/jpeg"
            ext = content_type.split("/")[-1].split(";")[0].strip() or "jpg"
            return await self._upload(user_id, response.content, content_type, ext)
        except (httpx.HTTPError, BayDigitalError) as exc:
            # Graph API may still be able to fetch the original
            logger.warning("image_staging_failed", image_url=image_url, error=str(exc))
            return image_url, None

    async def _upload(
        self, user_id: str, content: bytes, content_type: str, ext: str
    ) -> tuple[str, str]:
        path = f"{user_id}/scheduled-post-{int(time.time() * 1000)}.{ext}"
        await self.backend_client.upload(SOCIAL_IMAGE_BUCKET, path, content, content_type)
        return self.backend_client.public_url(SOCIAL_IMAGE_BUCKET, path), path

    async def cleanup(self, path: str | None) -> None:
        """Remove a staged image; failures are only logged."""
        if path:
            await self.backend_client.remove(SOCIAL_IMAGE_BUCKET, [path])

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()


class GraphPublisher:
    """Posts to a Facebook page and its linked Instagram business account."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        graph_url: str = GRAPH_API_URL,
    ):
        self.http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        self.graph_url = graph_url.rstrip("/")

    async def _post(self, platform: str, path: str, payload: dict, failure: str) -> dict:
        """POST to the Graph API.

        Raises:
            ExternalServiceError: On transport failure, a non-2xx reply or a non-JSON body
        """
        try:
            response = await self.http_client.post(f"{self.graph_url}/{path}", json=payload)
        except httpx.HTTPError as exc:
            logger.error("graph_request_failed", platform=platform, error=str(exc))
            raise ExternalServiceError(platform, f"{failure}: {str(exc) or type(exc).__name__}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise ExternalServiceError(platform, message or failure, response.status_code)
        if not isinstance(data, dict):
            raise ExternalServiceError(platform, f"{failure}: unexpected response", response.status_code)
        return data

    async def post_to_facebook(
        self,
        connection: SocialConnectionDB,
        text: str,
        image_url: str | None = None,
    ) -> dict:
        """Publish a photo post (with image) or a feed post (text only)."""
        if image_url:
            data = await self._post(
                "facebook",
                f"{connection.page_id}/photos",
                {"url": image_url, "caption": text, "access_token": connection.access_token},
                "Failed to post to Facebook",
            )
        else:
            data = await self._post(
                "facebook",
                f"{connection.page_id}/feed",
                {"message": text, "access_token": connection.access_token},
                "Failed to post to Facebook",
            )

        logger.info("facebook_post_published", page_id=connection.page_id, post_id=data.get("id"))
        return {
            "success": True,
            "post_id": data.get("id"),
            "post_url": f"https://www.facebook.com/{data.get('id')}",
        }

    async def post_to_instagram(
        self,
        connection: SocialConnectionDB,
        text: str,
        image_url: str,
    ) -> dict:
        """Create a media container, then publish it."""
        account_id = connection.instagram_account_id
        container = await self._post(
            "instagram",
            f"{account_id}/media",
            {"image_url": image_url, "caption": text, "access_token": connection.access_token},
            "Failed to create Instagram media container",
        )
        data = await self._post(
            "instagram",
            f"{account_id}/media_publish",
            {"creation_id": container.get("id"), "access_token": connection.access_token},
            "Failed to publish to Instagram",
        )

        logger.info("instagram_post_published", account_id=account_id, post_id=data.get("id"))
        return {
            "success": True,
            "post_id": data.get("id"),
            "post_url": f"https://www.instagram.com/p/{data.get('id')}",
        }

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()
