"""Pydantic schemas for the identity collaborator."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import UserRole


class AuthenticatedUser(BaseModel):
    """Caller identity resolved from the bearer token."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UpdateRoleRequest(BaseModel):
    """Admin request to record a user's role."""

    role: UserRole = Field(..., description="Role granted by the identity provider")


class UserRoleResponse(BaseModel):
    """Directory entry for a user."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    role: UserRole
    updated_at: datetime | None = None
