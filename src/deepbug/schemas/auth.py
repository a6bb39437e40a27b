"""Account-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import ActionResult


class UserData(BaseModel):
    """Public profile of a regular user, also stored in the user session."""

    id: str
    name: str
    email: str
    provider: Literal["email", "google"]
    avatar: str | None = None
    is_active: bool = True
    is_banned: bool = False
    role: Literal["user"] = "user"
    created_at: datetime | None = None
    last_login: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AdminData(BaseModel):
    """Administrator profile stored in the admin session; never carries the hash."""

    id: str
    name: str
    email: str
    role: Literal["admin"] = "admin"
    is_active: bool = True
    created_at: datetime | None = None
    last_login: datetime | None = None


class RegisterRequest(BaseModel):
    name: str = Field(..., description="Display name (2-50 characters)")
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class ProviderLoginRequest(BaseModel):
    """Google sign-in: the OAuth id token obtained by the client popup."""

    id_token: str


class AuthResult(ActionResult):
    """Outcome of a user login or registration."""

    user: UserData | None = None


class AdminAuthResult(ActionResult):
    """Outcome of an administrator login."""

    admin: AdminData | None = None


class CurrentIdentity(BaseModel):
    """Who the calling client is signed in as."""

    user: UserData | None = None
    admin: AdminData | None = None
