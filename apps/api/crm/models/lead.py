"""Lead model."""
from __future__ import annotations

from datetime import datetime
import enum

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, enum_values, utcnow


class LeadType(str, enum.Enum):
    CHS = "CHS"
    HOTEL = "Hotel"
    CORPORATE = "Corporate"
    DEVELOPER = "Developer"
    OTHER = "Other"


class ParkingType(str, enum.Enum):
    OPEN = "open"
    BASEMENT = "basement"
    MIXED = "mixed"


class LeadStage(str, enum.Enum):
    NEW = "New"
    QUALIFIED = "Qualified"
    MEETING_BOOKED = "Meeting Booked"
    PROPOSAL_SENT = "Proposal Sent"
    WON = "Won"
    LOST = "Lost"


CLOSED_STAGES: tuple[LeadStage, ...] = (LeadStage.WON, LeadStage.LOST)


class Lead(Base):
    """Prospective charger-installation site captured from intake."""

    __tablename__ = "leads"
    __table_args__ = (Index("ix_leads_phone_email", "phone", "email"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    lead_id: Mapped[str | None] = mapped_column(String, unique=True)
    lead_type: Mapped[LeadType] = mapped_column(
        Enum(LeadType, name="lead_type", values_callable=enum_values), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String)
    area: Mapped[str] = mapped_column(String, nullable=False)
    locality: Mapped[str | None] = mapped_column(String)
    property_size_flats: Mapped[int | None] = mapped_column(Integer)
    parking_type: Mapped[ParkingType] = mapped_column(
        Enum(ParkingType, name="parking_type", values_callable=enum_values),
        default=ParkingType.OPEN,
        nullable=False,
    )
    current_ev_count: Mapped[int | None] = mapped_column(Integer)
    charger_interest: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    consent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    decision_maker_known: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    stage: Mapped[LeadStage] = mapped_column(
        Enum(LeadStage, name="lead_stage", values_callable=enum_values),
        default=LeadStage.NEW,
        nullable=False,
    )
    owner_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)
    lead_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_follow_up_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duplicate_of_id: Mapped[str | None] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"))
    created_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    updated_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
