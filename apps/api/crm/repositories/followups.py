"""Followup persistence helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.followup import Followup, FollowupStatus


async def get_by_id(session: AsyncSession, followup_id: str) -> Followup | None:
    """Return a followup by identifier."""

    return await session.get(Followup, followup_id)


async def create_followup(
    session: AsyncSession,
    *,
    lead_id: str,
    user_id: str,
    due_date: datetime,
    notes: str | None = None,
) -> Followup:
    """Persist a pending followup."""

    now = datetime.now(timezone.utc)
    followup = Followup(
        id=str(uuid4()),
        lead_id=lead_id,
        user_id=user_id,
        due_date=due_date,
        status=FollowupStatus.PENDING,
        notes=notes,
        created_by_id=user_id,
        created_at=now,
        updated_at=now,
    )
    session.add(followup)
    await session.flush()
    return followup


async def list_for_lead(session: AsyncSession, lead_id: str) -> list[Followup]:
    """Return the lead's followups ordered by due date."""

    stmt = select(Followup).where(Followup.lead_id == lead_id).order_by(Followup.due_date.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_due(session: AsyncSession, *, until: datetime) -> list[Followup]:
    """Return pending followups due at or before ``until``."""

    stmt = (
        select(Followup)
        .where(Followup.status == FollowupStatus.PENDING, Followup.due_date <= until)
        .order_by(Followup.due_date.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_for_lead(session: AsyncSession, lead_id: str) -> int:
    """Delete every followup attached to the lead and return the row count."""

    result = await session.execute(delete(Followup).where(Followup.lead_id == lead_id))
    return result.rowcount or 0
