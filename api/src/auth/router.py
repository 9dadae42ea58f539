"""User directory API endpoints.

Provides routes for:
- Registering the caller's role (`GET /v1/users/me`)
- Recording another user's role (admin only)
"""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import AdminUser, CurrentUser, UserDirectoryDep
from src.auth.schemas import UpdateRoleRequest, UserRoleResponse
from src.core.exceptions import LearningRecordError, to_http_exception


router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserRoleResponse,
    summary="Get current user",
)
async def get_me(
    user: CurrentUser,
    directory: UserDirectoryDep,
) -> UserRoleResponse:
    """Return the caller's identity, recording its role in the directory."""
    try:
        entry = await directory.sync_user(user.id, user.role)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return UserRoleResponse.model_validate(entry)


@router.put(
    "/{user_id}/role",
    response_model=UserRoleResponse,
    summary="Record user role (admin only)",
    responses={403: {"description": "Permission denied"}},
)
async def update_user_role(
    user_id: UUID,
    data: UpdateRoleRequest,
    admin: AdminUser,
    directory: UserDirectoryDep,
) -> UserRoleResponse:
    """Record the role the identity provider granted to a user."""
    try:
        entry = await directory.sync_user(user_id, data.role)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return UserRoleResponse.model_validate(entry)
