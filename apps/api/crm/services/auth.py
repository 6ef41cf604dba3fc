"""Login and first-admin bootstrap."""
from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.security import create_access_token, hash_password, verify_password
from ..models.user import UserRole
from ..repositories import users as users_repo
from ..schemas import auth as schemas

logger = logging.getLogger(__name__)


async def login(payload: schemas.LoginRequest, session: AsyncSession) -> schemas.LoginResponse:
    """Exchange email and password for an access token."""

    if not payload.email.strip() or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password required")

    user = await users_repo.get_by_email(session, payload.email)
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user.id, user.role.value)
    return schemas.LoginResponse(
        token=token,
        user=schemas.AuthUser(id=user.id, name=user.name, email=user.email, role=user.role),
    )


async def seed_admin(payload: schemas.SeedAdminRequest, session: AsyncSession) -> schemas.SeedAdminResponse:
    """Create the first admin account unless one already exists."""

    async with session.begin():
        admins = await users_repo.list_users(session, role=UserRole.ADMIN)
        if admins:
            return schemas.SeedAdminResponse(message="Admin already exists", admin_email=admins[-1].email)

        admin = await users_repo.create_user(
            session,
            name=settings.seed_admin_name,
            email=settings.seed_admin_email,
            password_hash=hash_password(payload.password or settings.seed_admin_password),
            role=UserRole.ADMIN,
        )

    logger.info("Seeded admin account %s", admin.email)
    return schemas.SeedAdminResponse(message="Admin created", admin_email=admin.email)
