"""User profile and administration endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..models.user import User
from ..schemas import users as users_schema
from ..services import users as users_service
from .dependencies import get_current_user, require_admin

router = APIRouter()


@router.get("/me", response_model=users_schema.UserProfile)
async def me(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserProfile:
    """Return the caller's profile and lead counts."""

    return await users_service.get_profile(user, session)


@router.get("", response_model=list[users_schema.UserRead])
async def list_users(
    _: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> list[users_schema.UserRead]:
    """Return all users."""

    return await users_service.list_users(session)


@router.get("/performance", response_model=list[users_schema.AgentPerformance])
async def performance(
    _: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> list[users_schema.AgentPerformance]:
    """Return per-agent lead counts and incentive status."""

    return await users_service.list_performance(session)


@router.post("", response_model=users_schema.UserRead, status_code=status.HTTP_201_CREATED)
async def invite_user(
    payload: users_schema.UserCreateRequest,
    _: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserRead:
    """Create a new admin or sales account."""

    return await users_service.invite_user(payload, session)


@router.put("/{user_id}", response_model=users_schema.UserRead)
async def update_user(
    user_id: str,
    payload: users_schema.UserUpdateRequest,
    _: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserRead:
    """Update a user's sales target or active flag."""

    return await users_service.update_user(user_id, payload, session)


@router.delete("/{user_id}", response_model=users_schema.MessageResponse)
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> users_schema.MessageResponse:
    """Remove a user account."""

    return await users_service.delete_user(user_id, admin, session)
