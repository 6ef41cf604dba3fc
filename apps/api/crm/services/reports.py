"""Read-only dashboard rollups over the lead collection."""
from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import LeadStage
from ..models.user import User, UserRole
from ..repositories import leads as leads_repo
from ..schemas import reports as schemas

TOP_LOCALITIES_LIMIT = 10


def start_of_week(now: datetime) -> datetime:
    """Return Monday 00:00 UTC of the week containing ``now``."""

    current = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
    today = current.astimezone(timezone.utc).date()
    monday = today - timedelta(days=today.weekday())
    return datetime.combine(monday, time.min, tzinfo=timezone.utc)


def conversion_rate(new_count: int, meeting_count: int) -> int:
    """Meetings booked as a rounded percentage of New leads."""

    if new_count == 0:
        return 0
    return round(meeting_count / new_count * 100)


async def build_summary(
    actor: User,
    session: AsyncSession,
    *,
    now: datetime | None = None,
) -> schemas.ReportSummary:
    """Weekly intake, stage distribution and locality hotspots for the actor's scope."""

    owner_id = None if actor.role == UserRole.ADMIN else actor.id
    week_start = start_of_week(now or datetime.now(timezone.utc))

    new_this_week = await leads_repo.count_created_since(session, week_start, owner_id=owner_id)
    counts = await leads_repo.stage_counts(session, owner_id=owner_id)
    hotspots = await leads_repo.top_localities(session, owner_id=owner_id, limit=TOP_LOCALITIES_LIMIT)

    return schemas.ReportSummary(
        new_leads_this_week=new_this_week,
        stage_counts=counts,
        conversion_new_to_meeting=conversion_rate(
            counts.get(LeadStage.NEW.value, 0), counts.get(LeadStage.MEETING_BOOKED.value, 0)
        ),
        top_localities=[
            schemas.LocalityCount(area=area, locality=locality, count=count)
            for area, locality, count in hotspots
        ],
    )
