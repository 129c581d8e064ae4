"""Role checks backed by the user_roles table."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.account import AppRole, UserRoleDB


class RoleChecker:
    """Checks dashboard roles for a user.

    Roles are plain rows; a user with no row is an ordinary tenant.
    """

    def __init__(self, db_session: AsyncSession):
        """Initialize role checker.

        Args:
            db_session: Database session for reading roles
        """
        self.db_session = db_session

    async def has_role(self, user_id: uuid.UUID, role: AppRole) -> bool:
        """Check if user holds the given role."""
        query = select(UserRoleDB.id).where(
            UserRoleDB.user_id == user_id,
            UserRoleDB.role == role.value,
        )
        result = await self.db_session.execute(query)
        return result.first() is not None

    async def is_admin(self, user_id: uuid.UUID) -> bool:
        return await self.has_role(user_id, AppRole.ADMIN)

    async def list_admin_ids(self) -> list[uuid.UUID]:
        """All user ids holding the admin role."""
        query = select(UserRoleDB.user_id).where(UserRoleDB.role == AppRole.ADMIN.value)
        result = await self.db_session.execute(query)
        return list(result.scalars().all())
