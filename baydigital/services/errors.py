"""Domain exceptions raised by services and mapped to HTTP responses by the API."""


class BayDigitalError(Exception):
    """Base class for expected, user-facing failures."""

    error_type = "bay_digital_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequestError(BayDigitalError):
    """Request is well-formed but cannot be honoured (missing site, bad state, ...)."""

    error_type = "invalid_request"


class NotFoundError(BayDigitalError):
    """Row does not exist or is not owned by the caller."""

    error_type = "not_found"


class QuotaExceededError(BayDigitalError):
    """Plan limit reached for the current period."""

    error_type = "quota_exceeded"


class ExternalServiceError(BayDigitalError):
    """A vendor or managed-backend call failed."""

    error_type = "external_service_error"

    def __init__(self, service: str, message: str, status_code: int | None = None):
        super().__init__(
            message,
            details={"service": service, "status": status_code},
        )
        self.service = service
        self.status_code = status_code
