"""User administration, profiles and sales performance."""
from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import hash_password
from ..models.lead import LeadStage
from ..models.user import User, UserRole
from ..repositories import leads as leads_repo
from ..repositories import users as users_repo
from ..schemas import users as schemas
from .incentives import apply_won_count, is_incentive_eligible, recompute_incentive

logger = logging.getLogger(__name__)


async def list_users(session: AsyncSession) -> list[schemas.UserRead]:
    """Return every user, newest first."""

    users = await users_repo.list_users(session)
    return [schemas.UserRead.model_validate(user) for user in users]


async def invite_user(payload: schemas.UserCreateRequest, session: AsyncSession) -> schemas.UserRead:
    """Create a user account with a hashed password."""

    email = payload.email.strip().lower()
    async with session.begin():
        if await users_repo.get_by_email(session, email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists"
            )
        user = await users_repo.create_user(
            session,
            name=payload.name,
            email=email,
            phone=payload.phone,
            role=payload.role,
            password_hash=hash_password(payload.password),
        )

    logger.info("Invited %s user %s", user.role.value, user.email)
    return schemas.UserRead.model_validate(user)


async def update_user(
    user_id: str,
    payload: schemas.UserUpdateRequest,
    session: AsyncSession,
) -> schemas.UserRead:
    """Adjust a user's sales target or active flag."""

    async with session.begin():
        user = await users_repo.get_by_id(session, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if payload.is_active is not None:
            user.is_active = payload.is_active
        session.add(user)
        if payload.sales_target is not None and payload.sales_target != user.sales_target:
            user.sales_target = payload.sales_target
            await recompute_incentive(session, user.id)

    return schemas.UserRead.model_validate(user)


async def delete_user(user_id: str, actor: User, session: AsyncSession) -> schemas.MessageResponse:
    """Remove a user, refusing self-removal and removal of the last admin."""

    if user_id == actor.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own account"
        )

    async with session.begin():
        user = await users_repo.get_by_id(session, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if user.role == UserRole.ADMIN and await users_repo.count_by_role(session, UserRole.ADMIN) <= 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="At least one admin must remain"
            )
        await users_repo.delete_user(session, user)

    logger.info("Removed user %s", user.email)
    return schemas.MessageResponse(message="User removed")


async def get_profile(actor: User, session: AsyncSession) -> schemas.UserProfile:
    """Return the caller's account with live lead counts."""

    user = await users_repo.get_by_id(session, actor.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    counts = await _lead_counts(session, user.id)
    base = schemas.UserRead.model_validate(user).model_dump()
    base["incentive_eligible"] = is_incentive_eligible(user.sales_target, counts.won_leads)
    return schemas.UserProfile(**base, **counts.model_dump())


async def list_performance(session: AsyncSession) -> list[schemas.AgentPerformance]:
    """Per-agent rollup that also heals stale incentive aggregates."""

    results: list[schemas.AgentPerformance] = []
    async with session.begin():
        agents = await users_repo.list_users(session, role=UserRole.SALES)
        for agent in agents:
            counts = await _lead_counts(session, agent.id)
            if apply_won_count(agent, counts.won_leads):
                session.add(agent)
                logger.info("Healed incentive aggregate for user %s", agent.id)
            results.append(
                schemas.AgentPerformance(
                    **schemas.UserRead.model_validate(agent).model_dump(),
                    **counts.model_dump(),
                )
            )
    return results


async def _lead_counts(session: AsyncSession, user_id: str) -> schemas.LeadCounts:
    return schemas.LeadCounts(
        assigned_leads=await leads_repo.count_for_owner(session, user_id),
        won_leads=await leads_repo.count_for_owner(session, user_id, stage=LeadStage.WON),
        pending_leads=await leads_repo.count_for_owner(session, user_id, open_only=True),
    )
