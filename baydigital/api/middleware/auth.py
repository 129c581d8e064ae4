"""Authentication dependencies for FastAPI."""

import hmac
import os
import uuid

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.auth.roles import RoleChecker
from baydigital.auth.token_validator import TokenValidator
from baydigital.services.database import get_db_session

# Security scheme for Swagger UI
security = HTTPBearer(auto_error=False)


class AuthMiddleware:
    """Authentication against the managed backend's access tokens."""

    def __init__(self, token_validator: TokenValidator | None = None):
        """Initialize auth middleware."""
        self.token_validator = token_validator or TokenValidator()

    async def verify_token(self, authorization: str | None) -> dict:
        """Verify bearer token and extract user info.

        Args:
            authorization: Authorization header with Bearer token

        Returns:
            User information dict (user_id as UUID)

        Raises:
            HTTPException: If token is invalid or missing
        """
        if not authorization:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing Authorization header",
                headers={"WWW-Authenticate": "Bearer"},
            )

        token = self.token_validator.extract_token_from_header(authorization)
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid Authorization header format. Expected: Bearer <token>",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_info = await self.token_validator.validate_token(token)
        if not user_info:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            user_info["user_id"] = uuid.UUID(str(user_info["user_id"]))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            ) from None

        return user_info


# Global instance
auth_middleware = AuthMiddleware()


async def get_current_user(
    request: Request,
    authorization: str = Header(None),
) -> dict:
    """FastAPI dependency for getting current authenticated user.

    Example:
        @router.get("/protected")
        async def protected_route(user: dict = Depends(get_current_user)):
            return {"user_id": str(user["user_id"])}
    """
    user = await auth_middleware.verify_token(authorization)
    request.state.user_id = str(user["user_id"])
    return user


async def is_admin_user(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> bool:
    """FastAPI dependency resolving whether the caller holds the admin role."""
    return await RoleChecker(db_session).is_admin(current_user["user_id"])


async def require_admin(
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
) -> dict:
    """FastAPI dependency for admin-only routes.

    Raises:
        HTTPException: 403 if the caller is not an admin
    """
    if not is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


async def require_service_key(authorization: str = Header(None)) -> None:
    """FastAPI dependency for cron and maintenance endpoints.

    Accepts only the managed backend's service-role key as bearer token.
    """
    expected = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    token = auth_middleware.token_validator.extract_token_from_header(authorization or "")
    if not expected or not token or not hmac.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Service credentials required",
            headers={"WWW-Authenticate": "Bearer"},
        )
