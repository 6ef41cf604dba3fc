"""Lead lifecycle: intake, stage/owner updates, deletion and the activity ledger."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.activity import ActivityType
from ..models.lead import CLOSED_STAGES, Lead, LeadStage
from ..models.user import User, UserRole
from ..repositories import activities as activities_repo
from ..repositories import followups as followups_repo
from ..repositories import leads as leads_repo
from ..repositories import users as users_repo
from ..schemas import leads as schemas
from .assignment import assign_owner
from .incentives import recompute_incentive
from .scoring import compute_lead_score

logger = logging.getLogger(__name__)


def build_lead_id(created_at: datetime, internal_id: str, *, prefix: str | None = None) -> str:
    """Derive the human-readable lead id from creation time and internal id."""

    millis = int(created_at.timestamp() * 1000)
    return f"{prefix or settings.lead_id_prefix}-{str(millis)[-6:]}-{internal_id[-4:]}"


def stage_transition_subject(old: LeadStage | str, new: LeadStage | str) -> str:
    return f"Stage: {LeadStage(old).value} → {LeadStage(new).value}"


def default_stage_note(old: LeadStage | str, new: LeadStage | str) -> str:
    return f"Lead moved from {LeadStage(old).value} to {LeadStage(new).value}"


def can_access_lead(actor: User, lead: Lead) -> bool:
    """Admins reach every lead; everyone else only the leads they own."""

    if actor.role == UserRole.ADMIN:
        return True
    return lead.owner_id is not None and lead.owner_id == actor.id


async def create_lead(
    payload: schemas.LeadCreateRequest,
    session: AsyncSession,
) -> schemas.LeadCreateResponse:
    """Capture an inbound lead, flag duplicates and route it to a sales agent."""

    try:
        async with session.begin():
            existing = await leads_repo.find_duplicate(session, phone=payload.phone, email=payload.email)
            owner = await assign_owner(session)

            lead = await leads_repo.create_lead(
                session,
                **payload.model_dump(),
                stage=LeadStage.NEW,
                lead_score=compute_lead_score(payload),
                owner_id=owner.id if owner else None,
                duplicate_of_id=existing.id if existing else None,
            )
            lead.lead_id = build_lead_id(lead.created_at, lead.id)
            session.add(lead)
            await session.flush()
    except SQLAlchemyError as exc:
        logger.exception("Failed to create lead")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create lead"
        ) from exc

    if existing:
        logger.info("Lead %s flagged as possible duplicate of %s", lead.lead_id, existing.id)

    return schemas.LeadCreateResponse(
        lead_id=lead.lead_id,
        id=lead.id,
        duplicate=existing is not None,
        assigned_to=owner.name if owner else None,
    )


async def list_leads(
    filters: leads_repo.LeadFilters,
    actor: User,
    session: AsyncSession,
    *,
    limit: int | None = None,
) -> list[schemas.LeadRead]:
    """Return leads visible to the actor, newest first."""

    scoped = _scope_filters(filters, actor)
    leads = await leads_repo.list_leads(session, scoped, limit=limit)
    names = await users_repo.names_by_id(session, (lead.owner_id for lead in leads))
    return [_to_lead_read(lead, names.get(lead.owner_id or "")) for lead in leads]


async def get_lead_detail(
    lead_id: str,
    actor: User,
    session: AsyncSession,
) -> schemas.LeadDetailResponse:
    """Return a lead with its activity history and followups."""

    lead = await _get_accessible_lead(session, lead_id, actor)
    activities = await activities_repo.list_for_lead(session, lead.id)
    followups = await followups_repo.list_for_lead(session, lead.id)
    names = await users_repo.names_by_id(
        session, [lead.owner_id, *(activity.user_id for activity in activities)]
    )

    return schemas.LeadDetailResponse(
        lead=_to_lead_read(lead, names.get(lead.owner_id or "")),
        activities=[
            schemas.ActivityRead.model_validate(activity).model_copy(
                update={"user_name": names.get(activity.user_id or "")}
            )
            for activity in activities
        ],
        followups=[schemas.FollowupRead.model_validate(followup) for followup in followups],
    )


async def update_lead(
    lead_id: str,
    payload: schemas.LeadUpdateRequest,
    actor: User,
    session: AsyncSession,
) -> schemas.LeadRead:
    """Apply a lead patch, logging stage moves and refreshing incentive aggregates."""

    changes = payload.changes()
    if changes.get("next_follow_up_date") is not None:
        changes["next_follow_up_date"] = _ensure_tz(changes["next_follow_up_date"])

    async with session.begin():
        lead = await _get_accessible_lead(session, lead_id, actor)

        new_owner_id = changes.get("owner_id")
        if new_owner_id is not None and await users_repo.get_by_id(session, new_owner_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Owner not found")

        old_stage = lead.stage
        old_owner_id = lead.owner_id

        for field, value in changes.items():
            setattr(lead, field, value)
        lead.updated_by_id = actor.id

        stage_changed = lead.stage != old_stage
        owner_changed = lead.owner_id != old_owner_id

        if stage_changed:
            _track_closure(lead, old_stage)
        lead.lead_score = compute_lead_score(lead)
        session.add(lead)
        await session.flush()

        if stage_changed:
            await activities_repo.create_activity(
                session,
                lead_id=lead.id,
                user_id=actor.id,
                type=ActivityType.NOTE,
                subject=stage_transition_subject(old_stage, lead.stage),
                description=payload.stage_note or default_stage_note(old_stage, lead.stage),
            )

        if stage_changed or owner_changed:
            await recompute_incentive(session, lead.owner_id)
            if owner_changed:
                await recompute_incentive(session, old_owner_id)

        names = await users_repo.names_by_id(session, [lead.owner_id])

    return _to_lead_read(lead, names.get(lead.owner_id or ""))


async def delete_lead(
    lead_id: str,
    actor: User,
    session: AsyncSession,
) -> schemas.DeleteResponse:
    """Permanently remove a lead together with its activities and followups."""

    async with session.begin():
        lead = await _get_accessible_lead(session, lead_id, actor)
        owner_id = lead.owner_id
        label = lead.lead_id or lead.id

        removed_activities = await activities_repo.delete_for_lead(session, lead.id)
        removed_followups = await followups_repo.delete_for_lead(session, lead.id)
        await leads_repo.delete_lead(session, lead)

        if owner_id:
            await recompute_incentive(session, owner_id)

    logger.info(
        "Deleted lead %s (%s activities, %s followups)",
        label,
        removed_activities,
        removed_followups,
    )
    return schemas.DeleteResponse(message="Lead and related records deleted")


async def add_activity(
    lead_id: str,
    payload: schemas.ActivityCreateRequest,
    actor: User,
    session: AsyncSession,
) -> schemas.ActivityRead:
    """Append an activity authored by the actor."""

    async with session.begin():
        lead = await _get_accessible_lead(session, lead_id, actor)
        activity = await activities_repo.create_activity(
            session,
            lead_id=lead.id,
            user_id=actor.id,
            type=payload.type,
            subject=payload.subject or "",
            description=payload.description,
            attachment_url=payload.attachment_url,
        )

    return schemas.ActivityRead.model_validate(activity).model_copy(update={"user_name": actor.name})


async def add_followup(
    lead_id: str,
    payload: schemas.FollowupCreateRequest,
    actor: User,
    session: AsyncSession,
) -> schemas.FollowupRead:
    """Schedule a followup for the actor and surface it as the lead's next followup."""

    due_date = _ensure_tz(payload.due_date)

    async with session.begin():
        lead = await _get_accessible_lead(session, lead_id, actor)
        followup = await followups_repo.create_followup(
            session,
            lead_id=lead.id,
            user_id=actor.id,
            due_date=due_date,
            notes=payload.notes,
        )
        lead.next_follow_up_date = due_date
        session.add(lead)

    return schemas.FollowupRead.model_validate(followup)


async def update_followup(
    lead_id: str,
    followup_id: str,
    payload: schemas.FollowupUpdateRequest,
    actor: User,
    session: AsyncSession,
) -> schemas.FollowupRead:
    """Change a followup's status, due date or notes."""

    async with session.begin():
        lead = await _get_accessible_lead(session, lead_id, actor)
        followup = await followups_repo.get_by_id(session, followup_id)
        if followup is None or followup.lead_id != lead.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Followup not found")

        if payload.status is not None:
            followup.status = payload.status
        if payload.due_date is not None:
            followup.due_date = _ensure_tz(payload.due_date)
            lead.next_follow_up_date = followup.due_date
            session.add(lead)
        if payload.notes is not None:
            followup.notes = payload.notes
        followup.updated_by_id = actor.id
        session.add(followup)

    return schemas.FollowupRead.model_validate(followup)


def _scope_filters(filters: leads_repo.LeadFilters, actor: User) -> leads_repo.LeadFilters:
    """Sales users only ever see their own leads."""

    if actor.role == UserRole.ADMIN:
        return filters
    return leads_repo.LeadFilters(
        owner_id=actor.id,
        q=filters.q,
        area=filters.area,
        lead_type=filters.lead_type,
        stage=filters.stage,
        from_date=filters.from_date,
        to_date=filters.to_date,
    )


async def _get_accessible_lead(session: AsyncSession, lead_id: str, actor: User) -> Lead:
    lead = await leads_repo.get_by_id(session, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    if not can_access_lead(actor, lead):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return lead


def _track_closure(lead: Lead, old_stage: LeadStage) -> None:
    """Stamp ``closed_at`` when a lead enters Won/Lost and clear it when it reopens."""

    if lead.stage in CLOSED_STAGES:
        if old_stage not in CLOSED_STAGES or lead.closed_at is None:
            lead.closed_at = datetime.now(timezone.utc)
    else:
        lead.closed_at = None


def _to_lead_read(lead: Lead, owner_name: str | None) -> schemas.LeadRead:
    return schemas.LeadRead.model_validate(lead).model_copy(update={"owner_name": owner_name})


def _ensure_tz(value: datetime) -> datetime:
    """Ensure the datetime is timezone-aware in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
