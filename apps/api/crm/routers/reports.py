"""Dashboard report endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..models.user import User
from ..schemas import reports as reports_schema
from ..services import reports as reports_service
from .dependencies import get_current_user

router = APIRouter()


@router.get("/summary", response_model=reports_schema.ReportSummary)
async def summary(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> reports_schema.ReportSummary:
    """Return weekly intake, stage counts and locality hotspots."""

    return await reports_service.build_summary(user, session)
