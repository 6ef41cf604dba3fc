"""Expose ORM models."""
from .activity import Activity, ActivityType
from .followup import Followup, FollowupStatus
from .lead import CLOSED_STAGES, Lead, LeadStage, LeadType, ParkingType
from .user import User, UserRole

__all__ = [
    "Activity",
    "ActivityType",
    "CLOSED_STAGES",
    "Followup",
    "FollowupStatus",
    "Lead",
    "LeadStage",
    "LeadType",
    "ParkingType",
    "User",
    "UserRole",
]
