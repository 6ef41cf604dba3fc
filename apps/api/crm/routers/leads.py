"""Lead intake, pipeline and ledger endpoints."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.session import get_session
from ..models.lead import LeadStage, LeadType
from ..models.user import User
from ..repositories.leads import LeadFilters
from ..schemas import leads as leads_schema
from ..services import export as export_service
from ..services import leads as leads_service
from .dependencies import get_current_user

router = APIRouter()


@router.post(
    "/public",
    response_model=leads_schema.LeadCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_public_lead(
    payload: leads_schema.LeadCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadCreateResponse:
    """Capture a lead from the public intake form."""

    return await leads_service.create_lead(payload, session)


@router.get("", response_model=list[leads_schema.LeadRead])
async def list_leads(
    q: str | None = None,
    area: str | None = None,
    lead_type: LeadType | None = None,
    stage: LeadStage | None = None,
    owner: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = Query(default=settings.default_list_limit, ge=1),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[leads_schema.LeadRead]:
    """Return leads visible to the caller."""

    filters = LeadFilters(
        owner_id=owner,
        q=q,
        area=area,
        lead_type=lead_type,
        stage=stage,
        from_date=from_date,
        to_date=to_date,
    )
    return await leads_service.list_leads(filters, user, session, limit=limit)


@router.get("/export/csv")
async def export_leads_csv(
    owner: str | None = None,
    stage: LeadStage | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    """Download the caller's filtered leads as CSV."""

    filters = LeadFilters(owner_id=owner, stage=stage, from_date=from_date, to_date=to_date)
    content = await export_service.export_leads_csv(filters, user, session)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="acs-leads.csv"'},
    )


@router.get("/{lead_id}", response_model=leads_schema.LeadDetailResponse)
async def get_lead(
    lead_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadDetailResponse:
    """Return a lead with its activities and followups."""

    return await leads_service.get_lead_detail(lead_id, user, session)


@router.put("/{lead_id}", response_model=leads_schema.LeadRead)
async def update_lead(
    lead_id: str,
    payload: leads_schema.LeadUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadRead:
    """Patch lead fields, stage or owner."""

    return await leads_service.update_lead(lead_id, payload, user, session)


@router.delete("/{lead_id}", response_model=leads_schema.DeleteResponse)
async def delete_lead(
    lead_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.DeleteResponse:
    """Permanently delete a lead and its history."""

    return await leads_service.delete_lead(lead_id, user, session)


@router.post(
    "/{lead_id}/activities",
    response_model=leads_schema.ActivityRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_activity(
    lead_id: str,
    payload: leads_schema.ActivityCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.ActivityRead:
    """Log a call, message, meeting or note against the lead."""

    return await leads_service.add_activity(lead_id, payload, user, session)


@router.post(
    "/{lead_id}/followups",
    response_model=leads_schema.FollowupRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_followup(
    lead_id: str,
    payload: leads_schema.FollowupCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.FollowupRead:
    """Schedule a followup reminder."""

    return await leads_service.add_followup(lead_id, payload, user, session)


@router.patch("/{lead_id}/followups/{followup_id}", response_model=leads_schema.FollowupRead)
async def update_followup(
    lead_id: str,
    followup_id: str,
    payload: leads_schema.FollowupUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.FollowupRead:
    """Complete, skip or reschedule a followup."""

    return await leads_service.update_followup(lead_id, followup_id, payload, user, session)
