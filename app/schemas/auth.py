"""Pydantic schemas for login and session introspection."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from app.schemas.common import CamelModel, require_text
from app.schemas.user import UserRead


class LoginRequest(CamelModel):
    username: str
    password: str
    remember_me: bool = False

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return require_text(v, "username")

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("password is required")
        return v


class SessionUser(CamelModel):
    id: int
    username: str
    role: str | None = None


class LoginResponse(CamelModel):
    success: bool = True
    message: str = "Login successful"
    user: SessionUser
    session_expires_at: int
    session_timeout: int
    remember_me: bool = False


class CheckResponse(CamelModel):
    success: bool = True
    authenticated: bool = True
    user: SessionUser


class MeData(UserRead):
    permissions: list[str]
    menus: list[dict[str, Any]]


class MeResponse(CamelModel):
    success: bool = True
    data: MeData
