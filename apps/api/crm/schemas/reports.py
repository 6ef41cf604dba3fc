"""Schemas for dashboard rollups."""
from __future__ import annotations

from pydantic import BaseModel, Field


class LocalityCount(BaseModel):
    area: str
    locality: str | None = None
    count: int


class ReportSummary(BaseModel):
    new_leads_this_week: int
    stage_counts: dict[str, int] = Field(default_factory=dict)
    conversion_new_to_meeting: int
    top_localities: list[LocalityCount] = Field(default_factory=list)
