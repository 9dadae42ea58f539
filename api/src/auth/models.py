"""Database models for the user directory.

Identity lives with the external provider; this service keeps only the
role of each user it has seen, so platform statistics can count students.

Tables:
- user_roles: current role per user
- users_by_role: lookup partitioned by role for counting
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from src.auth.permissions import UserRole
from src.core.timestamps import ensure_utc_aware


USER_ROLES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_roles (
    user_id UUID PRIMARY KEY,
    role TEXT,
    updated_at TIMESTAMP
)
"""

# Lookup: usuarios por role - particionado por role
USERS_BY_ROLE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_role (
    role TEXT,
    user_id UUID,
    updated_at TIMESTAMP,
    PRIMARY KEY (role, user_id)
)
"""

AUTH_TABLES_CQL = [
    USER_ROLES_TABLE_CQL,
    USERS_BY_ROLE_TABLE_CQL,
]


class UserRoleEntry:
    """Role recorded for a user."""

    def __init__(
        self,
        user_id: UUID,
        role: str = UserRole.STUDENT.value,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.role = role
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "UserRoleEntry":
        """Create UserRoleEntry instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            role=row.role or UserRole.STUDENT.value,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<UserRoleEntry {self.user_id} {self.role}>"
