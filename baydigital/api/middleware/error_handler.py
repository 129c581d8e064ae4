"""Error handling middleware and exception handlers."""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from baydigital.services.errors import (
    BayDigitalError,
    ExternalServiceError,
    InvalidRequestError,
    NotFoundError,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)

DOMAIN_STATUS_CODES = {
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    QuotaExceededError: status.HTTP_403_FORBIDDEN,
    ExternalServiceError: status.HTTP_502_BAD_GATEWAY,
}

HTTP_ERROR_TYPES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limit_exceeded",
}


class ErrorResponse:
    """Standardized error response format."""

    @staticmethod
    def create(
        error_type: str,
        message: str,
        details: str | dict | list | None = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ) -> JSONResponse:
        """Create error response.

        Args:
            error_type: Error type identifier
            message: Human-readable error message
            details: Additional error details
            status_code: HTTP status code

        Returns:
            JSONResponse with error information
        """
        content = {
            "error": {
                "type": error_type,
                "message": message,
            }
        }

        if details:
            content["error"]["details"] = details

        return JSONResponse(
            status_code=status_code,
            content=content,
        )


def status_code_for(exc: BayDigitalError) -> int:
    """HTTP status for a domain error."""
    if isinstance(exc, ExternalServiceError) and exc.status_code == 503:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    for error_class, code in DOMAIN_STATUS_CODES.items():
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


async def domain_exception_handler(request: Request, exc: BayDigitalError) -> JSONResponse:
    """Handle expected service-layer failures."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.error_type}: {exc.message}")
    else:
        logger.info(f"{exc.error_type}: {exc.message}")

    return ErrorResponse.create(
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
        status_code=status_code,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPException (auth, rate limits, unknown routes) in the error envelope.

    A dict detail supplies the message from its "message" key; the remaining
    keys become details. Response headers such as Retry-After are kept.
    """
    details = None
    if isinstance(exc.detail, dict):
        details = {k: v for k, v in exc.detail.items() if k not in ("message", "error")}
        message = exc.detail.get("message") or exc.detail.get("error") or "Request failed"
    else:
        message = str(exc.detail)

    response = ErrorResponse.create(
        error_type=HTTP_ERROR_TYPES.get(exc.status_code, "http_error"),
        message=message,
        details=details,
        status_code=exc.status_code,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: ValidationError | RequestValidationError
) -> JSONResponse:
    """Handle Pydantic and request-body validation errors."""
    logger.warning(f"Validation error: {exc}")

    return ErrorResponse.create(
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


async def permission_exception_handler(request: Request, exc: PermissionError) -> JSONResponse:
    """Handle permission errors."""
    logger.warning(f"Permission denied: {exc}")

    return ErrorResponse.create(
        error_type="permission_denied",
        message=str(exc),
        status_code=status.HTTP_403_FORBIDDEN,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)

    return ErrorResponse.create(
        error_type="internal_error",
        message="An unexpected error occurred. Please try again later.",
        details=str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
