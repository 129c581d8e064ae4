"""Managed-backend access token validation."""

import os

import structlog
from jose import JWTError, jwt

from baydigital.services.backend_client import ManagedBackendClient

logger = structlog.get_logger(__name__)


class TokenValidator:
    """Validates dashboard access tokens.

    Tokens are JWTs minted by the managed backend. With the project's JWT
    secret configured they are verified locally; otherwise the backend's
    user endpoint is asked to resolve them.
    """

    def __init__(
        self,
        jwt_secret: str | None = None,
        backend_client: ManagedBackendClient | None = None,
        audience: str = "authenticated",
    ):
        """Initialize token validator.

        Args:
            jwt_secret: HS256 signing secret (defaults to SUPABASE_JWT_SECRET env var)
            backend_client: Client used for remote validation
            audience: Expected "aud" claim
        """
        self.jwt_secret = jwt_secret if jwt_secret is not None else os.getenv("SUPABASE_JWT_SECRET")
        self.audience = audience
        self._backend_client = backend_client

    @property
    def backend_client(self) -> ManagedBackendClient:
        if self._backend_client is None:
            self._backend_client = ManagedBackendClient()
        return self._backend_client

    async def validate_token(self, token: str) -> dict | None:
        """Validate token and extract user information.

        Args:
            token: Bearer token from Authorization header

        Returns:
            User information dict with user_id, email, role if valid, None otherwise
        """
        if self.jwt_secret:
            return self._decode_local(token)
        return await self._validate_remote(token)

    def _decode_local(self, token: str) -> dict | None:
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
            )
        except JWTError as exc:
            logger.info("token_rejected", reason=str(exc))
            return None

        if not claims.get("sub"):
            return None

        return {
            "user_id": claims["sub"],
            "email": claims.get("email"),
            "role": claims.get("role"),
            "token": token,
        }

    async def _validate_remote(self, token: str) -> dict | None:
        user = await self.backend_client.get_user(token)
        if not user or not user.get("id"):
            return None

        return {
            "user_id": user["id"],
            "email": user.get("email"),
            "role": user.get("role"),
            "token": token,
        }

    def extract_token_from_header(self, authorization: str) -> str | None:
        """Extract bearer token from Authorization header.

        Args:
            authorization: Authorization header value

        Returns:
            Token string if valid format, None otherwise
        """
        if not authorization or not authorization.startswith("Bearer "):
            return None

        token = authorization[7:].strip()
        return token or None
