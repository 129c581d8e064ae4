"""HTTP client for the managed backend's auth and storage APIs."""

import os

import httpx
import structlog

from baydigital.services.errors import ExternalServiceError

logger = structlog.get_logger(__name__)


class ManagedBackendClient:
    """Wrapper for the hosted auth/storage platform the dashboard is built on.

    Tables are reached through the database session; this client covers the
    pieces that only exist as REST endpoints: user tokens, admin user
    creation, and object storage.
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        anon_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize backend client.

        Args:
            base_url: Project URL (defaults to SUPABASE_URL env var)
            service_key: Service-role key (defaults to SUPABASE_SERVICE_ROLE_KEY)
            anon_key: Public anon key (defaults to SUPABASE_ANON_KEY)
            http_client: Pre-built client (tests inject a mock transport)
        """
        self.base_url = (base_url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.service_key = service_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        self.anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY", "") or self.service_key
        self.http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(15.0))

    def _service_headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
        }

    # ========== Auth ==========

    async def get_user(self, token: str) -> dict | None:
        """Resolve an access token to the auth user record.

        Returns:
            Auth user JSON, or None if the token is rejected
        """
        try:
            response = await self.http_client.get(
                f"{self.base_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=5.0,
            )
        except httpx.HTTPError as exc:
            logger.warning("auth_lookup_failed", error=str(exc))
            return None

        if response.status_code != 200:
            return None
        return response.json()

    async def create_auth_user(self, email: str, password: str) -> str:
        """Create a confirmed auth user through the admin API.

        Returns:
            New auth user id

        Raises:
            ExternalServiceError: If the backend refuses the user
        """
        response = await self.http_client.post(
            f"{self.base_url}/auth/v1/admin/users",
            headers=self._service_headers(),
            json={"email": email, "password": password, "email_confirm": True},
        )
        if response.status_code >= 400:
            body = _safe_json(response)
            message = body.get("msg") or body.get("message") or body.get("error_description")
            raise ExternalServiceError(
                "auth",
                message or f"Failed to create user ({response.status_code})",
                response.status_code,
            )

        user_id = response.json()["id"]
        logger.info("auth_user_created", user_id=user_id)
        return user_id

    # ========== Storage ==========

    def public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    def is_storage_url(self, url: str) -> bool:
        """True if the URL already points into this project's storage."""
        return bool(self.base_url) and url.startswith(f"{self.base_url}/storage/v1/object/")

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """Upload bytes to storage.

        Returns:
            Object path inside the bucket

        Raises:
            ExternalServiceError: If the upload is rejected or storage is unreachable
        """
        try:
            response = await self.http_client.post(
                f"{self.base_url}/storage/v1/object/{bucket}/{path}",
                headers={
                    **self._service_headers(),
                    "Content-Type": content_type,
                    "x-upsert": "true" if upsert else "false",
                },
                content=content,
            )
        except httpx.HTTPError as exc:
            logger.error("storage_upload_failed", bucket=bucket, path=path, error=str(exc))
            raise ExternalServiceError(
                "storage", f"Upload failed: {str(exc) or type(exc).__name__}"
            ) from exc

        if response.status_code >= 400:
            body = _safe_json(response)
            raise ExternalServiceError(
                "storage",
                f"Upload failed: {body.get('message') or response.text}",
                response.status_code,
            )

        logger.info("storage_object_uploaded", bucket=bucket, path=path, size=len(content))
        return path

    async def remove(self, bucket: str, paths: list[str]) -> bool:
        """Delete objects; returns False instead of raising on failure."""
        try:
            response = await self.http_client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{bucket}",
                headers=self._service_headers(),
                json={"prefixes": paths},
            )
        except httpx.HTTPError as exc:
            logger.warning("storage_remove_failed", bucket=bucket, paths=paths, error=str(exc))
            return False

        if response.status_code >= 400:
            logger.warning(
                "storage_remove_failed",
                bucket=bucket,
                paths=paths,
                status_code=response.status_code,
            )
            return False
        return True

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()


def _safe_json(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
