"""Pydantic schemas for User CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import field_validator

from app.schemas.common import CamelModel, require_text

_SETTABLE_STATUSES = {"ACTIVE", "DISABLED"}


def _username(v: str) -> str:
    v = require_text(v, "username")
    if not 3 <= len(v) <= 100:
        raise ValueError("Username must be between 3 and 100 characters")
    return v


def _password(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Password is required")
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    return v


class UserCreate(CamelModel):
    username: str
    password: str
    role_id: int
    phone_number: str | None = None

    @field_validator("username")
    @classmethod
    def _validate_username(cls, v: str) -> str:
        return _username(v)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        return _password(v)


class UserUpdate(CamelModel):
    id: int
    username: str | None = None
    role_id: int | None = None
    phone_number: str | None = None
    profile_picture_path: str | None = None

    @field_validator("username")
    @classmethod
    def _validate_username(cls, v: str | None) -> str | None:
        return _username(v) if v is not None else v


class UserStatusUpdate(CamelModel):
    id: int
    status: str

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in _SETTABLE_STATUSES:
            raise ValueError("Status must be 'ACTIVE' or 'DISABLED'")
        return v


class PasswordReset(CamelModel):
    id: int
    password: str

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        return _password(v)


class UserKey(CamelModel):
    id: int


class UserRestoreRequest(CamelModel):
    id: int | None = None
    restore_all: bool = False


class UserPurgeRequest(CamelModel):
    id: int | None = None
    delete_all: bool = False


class RoleRead(CamelModel):
    id: int
    name: str
    description: str | None = None


class UserRead(CamelModel):
    id: int
    username: str
    role: RoleRead | None = None
    status: str
    phone_number: str | None = None
    profile_picture_path: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None
