"""Business logic services for the Bay Digital customer dashboard."""

from baydigital.services.database import DatabaseManager, get_db_session

__all__ = [
    "DatabaseManager",
    "get_db_session",
]
