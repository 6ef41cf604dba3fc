"""Periodic sweep that announces due followups on their leads."""
from __future__ import annotations

import logging
from datetime import datetime, time, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import SessionLocal
from ..models.activity import ActivityType
from ..repositories import activities as activities_repo
from ..repositories import followups as followups_repo
from ..repositories import leads as leads_repo

logger = logging.getLogger(__name__)


def end_of_day(now: datetime) -> datetime:
    """Return the last instant of ``now``'s UTC calendar day."""

    current = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
    current = current.astimezone(timezone.utc)
    return datetime.combine(current.date(), time.max, tzinfo=timezone.utc)


def reminder_description(due_date: datetime) -> str:
    return f"Auto reminder: follow-up due on {due_date.date().isoformat()}"


async def sweep_due_followups(session: AsyncSession, *, now: datetime | None = None) -> int:
    """Log a reminder note for every pending followup due by end of today.

    Followups keep their pending status, so they are announced again on each
    sweep until someone completes, skips or reschedules them.
    """

    cutoff = end_of_day(now or datetime.now(timezone.utc))

    async with session.begin():
        due = await followups_repo.list_due(session, until=cutoff)
        for followup in due:
            await activities_repo.create_activity(
                session,
                lead_id=followup.lead_id,
                user_id=followup.user_id,
                type=ActivityType.NOTE,
                description=reminder_description(followup.due_date),
            )
            lead = await leads_repo.get_by_id(session, followup.lead_id)
            if lead is not None and lead.next_follow_up_date is None:
                lead.next_follow_up_date = followup.due_date
                session.add(lead)

    return len(due)


async def run_reminder_job() -> None:
    """Scheduler entrypoint; failures are logged so the next tick still runs."""

    started = datetime.now(timezone.utc)
    try:
        async with SessionLocal() as session:
            processed = await sweep_due_followups(session, now=started)
    except Exception:
        logger.exception("Reminder sweep failed")
        return

    if processed:
        logger.info("Processed %s pending follow-ups at %s", processed, started.isoformat())
