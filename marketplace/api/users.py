"""
User routes.

Listing and deleting users is admin-only. A regular user can read and
update their own account; admins can read and update anyone's. Roles are
changed only through the admin API.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from marketplace.api.dependencies import get_user_service
from marketplace.auth.context import AuthContext
from marketplace.auth.jwt import AuthToken
from marketplace.auth.policies import require_admin, require_auth
from marketplace.auth.routes import RegisterResponse, login, register
from marketplace.core.models import MessageResponse, UserResponse
from marketplace.services.users import UserService, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


class UserUpdateResponse(BaseModel):
    message: str
    user: UserResponse


# Same handlers as /auth/register and /auth/login
router.add_api_route(
    "/register",
    register,
    methods=["POST"],
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
router.add_api_route("/login", login, methods=["POST"], response_model=AuthToken)


@router.get("", response_model=list[UserResponse])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    ctx: AuthContext = Depends(require_admin()),
    users: UserService = Depends(get_user_service),
):
    return [UserResponse.from_user(u) for u in await users.list_users(limit=limit, offset=offset)]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    ctx: AuthContext = Depends(require_auth()),
    users: UserService = Depends(get_user_service),
):
    ctx.require_self_or_admin(user_id)
    return UserResponse.from_user(await users.get(user_id))


@router.put("/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    ctx: AuthContext = Depends(require_auth()),
    users: UserService = Depends(get_user_service),
):
    """
    Update name, email or password. Fields not sent are left unchanged;
    a password is ignored for Google accounts.
    """
    ctx.require_self_or_admin(user_id)
    user = await users.update(user_id, data)
    return UserUpdateResponse(message="User updated successfully", user=UserResponse.from_user(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    ctx: AuthContext = Depends(require_admin()),
    users: UserService = Depends(get_user_service),
):
    await users.delete(user_id)
    return MessageResponse(message="User deleted successfully")
