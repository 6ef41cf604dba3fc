"""Lead repository helpers."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import CLOSED_STAGES, Lead, LeadStage, LeadType


@dataclass(frozen=True)
class LeadFilters:
    """Query filters shared by the lead listing and CSV export."""

    owner_id: str | None = None
    q: str | None = None
    area: str | None = None
    lead_type: LeadType | None = None
    stage: LeadStage | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


async def get_by_id(session: AsyncSession, lead_id: str) -> Lead | None:
    """Return a lead by identifier."""

    stmt: Select[tuple[Lead]] = select(Lead).where(Lead.id == lead_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_duplicate(session: AsyncSession, *, phone: str | None, email: str | None) -> Lead | None:
    """Return the earliest lead sharing the phone or email, if any."""

    contact_filters = []
    if phone:
        contact_filters.append(Lead.phone == phone)
    if email:
        contact_filters.append(Lead.email == email)
    if not contact_filters:
        return None

    stmt = select(Lead).where(or_(*contact_filters)).order_by(Lead.created_at.asc()).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_lead(session: AsyncSession, **fields: Any) -> Lead:
    """Persist a new lead and flush so the identifier and timestamps are assigned."""

    now = datetime.now(timezone.utc)
    lead = Lead(id=str(uuid4()), created_at=now, updated_at=now, **fields)
    session.add(lead)
    await session.flush()
    return lead


async def delete_lead(session: AsyncSession, lead: Lead) -> None:
    """Hard-delete the lead row."""

    await session.execute(delete(Lead).where(Lead.id == lead.id))


async def active_load_by_owner(session: AsyncSession, owner_ids: Iterable[str]) -> dict[str, int]:
    """Count open (not Won/Lost) leads per owner; owners without leads map to zero."""

    ids = list(owner_ids)
    loads = {owner_id: 0 for owner_id in ids}
    if not ids:
        return loads

    stmt = (
        select(Lead.owner_id, func.count(Lead.id))
        .where(Lead.owner_id.in_(ids), Lead.stage.not_in(CLOSED_STAGES))
        .group_by(Lead.owner_id)
    )
    result = await session.execute(stmt)
    for owner_id, count in result.all():
        loads[owner_id] = int(count)
    return loads


async def closed_durations_by_owner(
    session: AsyncSession,
    owner_ids: Iterable[str],
) -> dict[str, list[float]]:
    """Return closing durations in seconds for each owner's Won/Lost leads."""

    ids = list(owner_ids)
    durations: dict[str, list[float]] = {owner_id: [] for owner_id in ids}
    if not ids:
        return durations

    stmt = select(Lead.owner_id, Lead.created_at, Lead.closed_at, Lead.updated_at).where(
        Lead.owner_id.in_(ids), Lead.stage.in_(CLOSED_STAGES)
    )
    result = await session.execute(stmt)
    for owner_id, created_at, closed_at, updated_at in result.all():
        finished = closed_at or updated_at
        durations[owner_id].append((finished - created_at).total_seconds())
    return durations


async def count_for_owner(
    session: AsyncSession,
    owner_id: str,
    *,
    stage: LeadStage | None = None,
    open_only: bool = False,
) -> int:
    """Count leads owned by a user, optionally narrowed to a stage or to open leads."""

    stmt = select(func.count(Lead.id)).where(Lead.owner_id == owner_id)
    if stage is not None:
        stmt = stmt.where(Lead.stage == stage)
    if open_only:
        stmt = stmt.where(Lead.stage.not_in(CLOSED_STAGES))
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def list_leads(session: AsyncSession, filters: LeadFilters, *, limit: int | None = None) -> list[Lead]:
    """Return leads matching the filters, newest first."""

    stmt = select(Lead)
    if filters.owner_id:
        stmt = stmt.where(Lead.owner_id == filters.owner_id)
    if filters.area:
        stmt = stmt.where(Lead.area.ilike(f"%{filters.area}%"))
    if filters.lead_type:
        stmt = stmt.where(Lead.lead_type == filters.lead_type)
    if filters.stage:
        stmt = stmt.where(Lead.stage == filters.stage)
    if filters.from_date:
        stmt = stmt.where(Lead.created_at >= filters.from_date)
    if filters.to_date:
        stmt = stmt.where(Lead.created_at <= filters.to_date)
    if filters.q:
        pattern = f"%{filters.q}%"
        stmt = stmt.where(
            or_(
                Lead.name.ilike(pattern),
                Lead.phone.ilike(pattern),
                Lead.email.ilike(pattern),
                Lead.area.ilike(pattern),
                Lead.locality.ilike(pattern),
            )
        )
    stmt = stmt.order_by(Lead.created_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_created_since(session: AsyncSession, since: datetime, *, owner_id: str | None = None) -> int:
    """Count leads created at or after ``since``."""

    stmt = select(func.count(Lead.id)).where(Lead.created_at >= since)
    if owner_id:
        stmt = stmt.where(Lead.owner_id == owner_id)
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def stage_counts(session: AsyncSession, *, owner_id: str | None = None) -> dict[str, int]:
    """Return lead counts keyed by stage value."""

    stmt = select(Lead.stage, func.count(Lead.id)).group_by(Lead.stage)
    if owner_id:
        stmt = stmt.where(Lead.owner_id == owner_id)
    result = await session.execute(stmt)
    return {LeadStage(stage).value: int(count) for stage, count in result.all()}


async def top_localities(
    session: AsyncSession,
    *,
    owner_id: str | None = None,
    limit: int = 10,
) -> list[tuple[str, str | None, int]]:
    """Return the busiest (area, locality) pairs with their lead counts."""

    count_col = func.count(Lead.id).label("count")
    stmt = select(Lead.area, Lead.locality, count_col).group_by(Lead.area, Lead.locality)
    if owner_id:
        stmt = stmt.where(Lead.owner_id == owner_id)
    stmt = stmt.order_by(count_col.desc()).limit(limit)
    result = await session.execute(stmt)
    return [(area, locality, int(count)) for area, locality, count in result.all()]
