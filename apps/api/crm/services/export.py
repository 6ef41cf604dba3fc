"""CSV export of the filtered lead set."""
from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..repositories import leads as leads_repo
from ..schemas.leads import LeadRead
from .leads import list_leads

CSV_FIELDS: tuple[str, ...] = (
    "leadId",
    "leadType",
    "name",
    "phone",
    "email",
    "area",
    "locality",
    "propertySizeFlats",
    "parkingType",
    "currentEvCount",
    "chargerInterest",
    "stage",
    "leadScore",
    "ownerName",
    "createdAt",
)


def _cell(value: object) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        value = value.value
    if hasattr(value, "isoformat"):
        value = value.isoformat()
    return str(value).replace("\r\n", " ").replace("\n", " ")


def lead_row(lead: LeadRead) -> list[str]:
    values = (
        lead.lead_id,
        lead.lead_type,
        lead.name,
        lead.phone,
        lead.email,
        lead.area,
        lead.locality,
        lead.property_size_flats,
        lead.parking_type,
        lead.current_ev_count,
        "|".join(lead.charger_interest),
        lead.stage,
        lead.lead_score,
        lead.owner_name,
        lead.created_at,
    )
    return [_cell(value) for value in values]


def render_csv(leads: Iterable[LeadRead]) -> str:
    """Serialise leads with a header row; cells with commas or quotes are quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_FIELDS)
    for lead in leads:
        writer.writerow(lead_row(lead))
    return buffer.getvalue()


async def export_leads_csv(
    filters: leads_repo.LeadFilters,
    actor: User,
    session: AsyncSession,
) -> str:
    """Return the actor-scoped, filtered lead set as CSV text."""

    leads = await list_leads(filters, actor, session, limit=None)
    return render_csv(leads)
