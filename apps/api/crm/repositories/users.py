"""User repository helpers."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User, UserRole


async def get_by_id(session: AsyncSession, user_id: str) -> User | None:
    """Return a user by identifier."""

    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> User | None:
    """Return a user by (case-insensitive) email."""

    stmt = select(User).where(User.email == email.strip().lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession, *, role: UserRole | None = None) -> list[User]:
    """Return users, newest first."""

    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    stmt = stmt.order_by(User.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_active_sales(session: AsyncSession) -> list[User]:
    """Return active sales users in creation order."""

    stmt = (
        select(User)
        .where(User.role == UserRole.SALES, User.is_active.is_(True))
        .order_by(User.created_at.asc(), User.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_by_role(session: AsyncSession, role: UserRole) -> int:
    """Count users holding the given role."""

    stmt = select(func.count(User.id)).where(User.role == role)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def names_by_id(session: AsyncSession, user_ids: Iterable[str | None]) -> dict[str, str]:
    """Resolve user identifiers to display names."""

    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}
    stmt = select(User.id, User.name).where(User.id.in_(ids))
    result = await session.execute(stmt)
    return {user_id: name for user_id, name in result.all()}


async def create_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password_hash: str,
    phone: str | None = None,
    role: UserRole = UserRole.SALES,
) -> User:
    """Persist a new user."""

    now = datetime.now(timezone.utc)
    user = User(
        id=str(uuid4()),
        name=name,
        email=email.strip().lower(),
        phone=phone,
        password_hash=password_hash,
        role=role,
        is_active=True,
        sales_target=0,
        sales_achieved=0,
        incentive_eligible=False,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    await session.flush()
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    """Remove the user row."""

    await session.execute(delete(User).where(User.id == user.id))
