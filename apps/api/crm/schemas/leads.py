"""Schemas for lead intake, updates and the activity/followup ledger."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.activity import ActivityType
from ..models.followup import FollowupStatus
from ..models.lead import LeadStage, LeadType, ParkingType


def _coerce_interest(value: object) -> object:
    """Accept a single charger tag as well as a list of tags."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class LeadCreateRequest(BaseModel):
    lead_type: LeadType
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    area: str = Field(min_length=1)
    email: str | None = None
    locality: str | None = None
    property_size_flats: int | None = Field(default=None, ge=0)
    parking_type: ParkingType = ParkingType.OPEN
    current_ev_count: int | None = Field(default=None, ge=0)
    charger_interest: list[str] = Field(default_factory=list)
    notes: str | None = None
    consent: bool = False
    decision_maker_known: bool = False

    @field_validator("charger_interest", mode="before")
    @classmethod
    def _split_interest(cls, value: object) -> object:
        return _coerce_interest(value)


class LeadCreateResponse(BaseModel):
    lead_id: str
    id: str
    duplicate: bool
    assigned_to: str | None = None


NON_NULLABLE_PATCH_FIELDS = frozenset(
    {
        "lead_type",
        "name",
        "phone",
        "area",
        "parking_type",
        "charger_interest",
        "consent",
        "decision_maker_known",
        "stage",
    }
)


class LeadUpdateRequest(BaseModel):
    """Partial lead patch; unknown keys are dropped so identity and audit fields stay untouched."""

    model_config = ConfigDict(extra="ignore")

    lead_type: LeadType | None = None
    name: str | None = Field(default=None, min_length=1)
    phone: str | None = Field(default=None, min_length=1)
    email: str | None = None
    area: str | None = Field(default=None, min_length=1)
    locality: str | None = None
    property_size_flats: int | None = Field(default=None, ge=0)
    parking_type: ParkingType | None = None
    current_ev_count: int | None = Field(default=None, ge=0)
    charger_interest: list[str] | None = None
    notes: str | None = None
    consent: bool | None = None
    decision_maker_known: bool | None = None
    stage: LeadStage | None = None
    owner_id: str | None = None
    next_follow_up_date: datetime | None = None
    stage_note: str | None = None

    @field_validator("charger_interest", mode="before")
    @classmethod
    def _split_interest(cls, value: object) -> object:
        if isinstance(value, str):
            return _coerce_interest(value)
        return value

    @model_validator(mode="after")
    def _reject_null_required(self) -> "LeadUpdateRequest":
        for field in NON_NULLABLE_PATCH_FIELDS & self.model_fields_set:
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict[str, object]:
        """Return only the lead fields the caller actually sent."""

        return self.model_dump(exclude_unset=True, exclude={"stage_note"})


class LeadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lead_id: str | None = None
    lead_type: LeadType
    name: str
    phone: str
    email: str | None = None
    area: str
    locality: str | None = None
    property_size_flats: int | None = None
    parking_type: ParkingType
    current_ev_count: int | None = None
    charger_interest: list[str] = Field(default_factory=list)
    notes: str | None = None
    consent: bool = False
    decision_maker_known: bool = False
    stage: LeadStage
    lead_score: int = 0
    owner_id: str | None = None
    owner_name: str | None = None
    next_follow_up_date: datetime | None = None
    duplicate_of_id: str | None = None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None


class ActivityCreateRequest(BaseModel):
    type: ActivityType
    subject: str | None = None
    description: str = Field(min_length=1)
    attachment_url: str | None = None


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lead_id: str
    user_id: str | None = None
    user_name: str | None = None
    type: ActivityType
    subject: str | None = None
    description: str
    attachment_url: str | None = None
    created_at: datetime


class FollowupCreateRequest(BaseModel):
    due_date: datetime
    notes: str | None = None


class FollowupUpdateRequest(BaseModel):
    status: FollowupStatus | None = None
    due_date: datetime | None = None
    notes: str | None = None


class FollowupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lead_id: str
    user_id: str | None = None
    due_date: datetime
    status: FollowupStatus
    notes: str | None = None
    created_at: datetime


class LeadDetailResponse(BaseModel):
    lead: LeadRead
    activities: list[ActivityRead]
    followups: list[FollowupRead]


class DeleteResponse(BaseModel):
    message: str
