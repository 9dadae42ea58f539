"""User directory service.

Keeps `user_roles` and `users_by_role` in sync (dual write). A role change
removes the user from the old role partition before adding it to the new one.
"""

from datetime import UTC, datetime
from uuid import UUID

import structlog

from src.auth.models import UserRoleEntry
from src.auth.permissions import UserRole
from src.core.repository import CassandraRepository


logger = structlog.get_logger(__name__)


class UserDirectory(CassandraRepository):
    """Role registry backing the platform statistics."""

    def _prepare_statements(self) -> None:
        self._get_user_role = self._prepare("""
            SELECT user_id, role, updated_at FROM {keyspace}.user_roles
            WHERE user_id = ?
        """)

        self._upsert_user_role = self._prepare("""
            INSERT INTO {keyspace}.user_roles (user_id, role, updated_at)
            VALUES (?, ?, ?)
        """)

        self._insert_user_by_role = self._prepare("""
            INSERT INTO {keyspace}.users_by_role (role, user_id, updated_at)
            VALUES (?, ?, ?)
        """)

        self._delete_user_by_role = self._prepare("""
            DELETE FROM {keyspace}.users_by_role
            WHERE role = ? AND user_id = ?
        """)

        self._count_users_by_role = self._prepare("""
            SELECT COUNT(*) FROM {keyspace}.users_by_role WHERE role = ?
        """)

    async def get_user_role(self, user_id: UUID) -> UserRoleEntry | None:
        """Get the recorded role for a user."""
        row = await self._fetch_one(self._get_user_role, [user_id])
        return UserRoleEntry.from_row(row) if row else None

    async def sync_user(self, user_id: UUID, role: UserRole | str) -> UserRoleEntry:
        """Record a user's current role.

        Idempotent: re-syncing the same role only refreshes `updated_at`.

        Args:
            user_id: User UUID
            role: Role from the identity provider

        Returns:
            The stored entry
        """
        role_value = UserRole(role).value
        now = datetime.now(UTC)

        existing = await self.get_user_role(user_id)
        if existing and existing.role != role_value:
            await self._execute(self._delete_user_by_role, [existing.role, user_id])
            logger.info(
                "user_role_changed",
                user_id=str(user_id),
                old_role=existing.role,
                new_role=role_value,
            )

        await self._execute(self._upsert_user_role, [user_id, role_value, now])
        await self._execute(self._insert_user_by_role, [role_value, user_id, now])

        return UserRoleEntry(user_id=user_id, role=role_value, updated_at=now)

    async def count_users(self, role: UserRole | str) -> int:
        """Count users recorded with a role."""
        return await self._count(self._count_users_by_role, [UserRole(role).value])
