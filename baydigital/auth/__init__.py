"""Caller authentication and role checks."""

from baydigital.auth.roles import RoleChecker
from baydigital.auth.token_validator import TokenValidator

__all__ = [
    "RoleChecker",
    "TokenValidator",
]
