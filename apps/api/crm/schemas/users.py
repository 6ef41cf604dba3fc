"""Schemas for user administration and sales performance."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.user import UserRole


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    sales_target: int = 0
    sales_achieved: int = 0
    incentive_eligible: bool = False
    created_at: datetime


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    phone: str | None = None
    role: UserRole = UserRole.SALES


class UserUpdateRequest(BaseModel):
    sales_target: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class LeadCounts(BaseModel):
    assigned_leads: int
    won_leads: int
    pending_leads: int


class UserProfile(UserRead, LeadCounts):
    pass


class AgentPerformance(UserRead, LeadCounts):
    pass


class MessageResponse(BaseModel):
    message: str
