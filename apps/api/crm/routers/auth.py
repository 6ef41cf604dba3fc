"""Login and admin bootstrap endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas import auth as auth_schema
from ..services import auth as auth_service

router = APIRouter()


@router.post("/login", response_model=auth_schema.LoginResponse)
async def login(
    payload: auth_schema.LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> auth_schema.LoginResponse:
    """Return an access token for valid credentials."""

    return await auth_service.login(payload, session)


@router.post("/seed-admin", response_model=auth_schema.SeedAdminResponse)
async def seed_admin(
    payload: auth_schema.SeedAdminRequest | None = None,
    session: AsyncSession = Depends(get_session),
) -> auth_schema.SeedAdminResponse:
    """Create the first admin account."""

    return await auth_service.seed_admin(payload or auth_schema.SeedAdminRequest(), session)
