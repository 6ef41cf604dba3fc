"""Schemas for login and first-admin bootstrap."""
from __future__ import annotations

from pydantic import BaseModel

from ..models.user import UserRole


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class AuthUser(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole


class LoginResponse(BaseModel):
    token: str
    user: AuthUser


class SeedAdminRequest(BaseModel):
    password: str | None = None


class SeedAdminResponse(BaseModel):
    message: str
    admin_email: str
