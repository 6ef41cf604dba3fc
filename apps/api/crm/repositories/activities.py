"""Activity persistence helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity import Activity, ActivityType


async def create_activity(
    session: AsyncSession,
    *,
    lead_id: str,
    user_id: str | None,
    type: ActivityType,
    description: str,
    subject: str | None = None,
    attachment_url: str | None = None,
) -> Activity:
    """Append an activity entry for the lead."""

    activity = Activity(
        id=str(uuid4()),
        lead_id=lead_id,
        user_id=user_id,
        type=type,
        subject=subject,
        description=description,
        attachment_url=attachment_url,
        created_by_id=user_id,
        created_at=datetime.now(timezone.utc),
    )
    session.add(activity)
    await session.flush()
    return activity


async def list_for_lead(session: AsyncSession, lead_id: str) -> list[Activity]:
    """Return the lead's activities, newest first."""

    stmt = select(Activity).where(Activity.lead_id == lead_id).order_by(Activity.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_for_lead(session: AsyncSession, lead_id: str) -> int:
    """Delete every activity attached to the lead and return the row count."""

    result = await session.execute(delete(Activity).where(Activity.lead_id == lead_id))
    return result.rowcount or 0
