"""Pydantic schemas for citizen CRUD and trash actions."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import field_validator

from app.models.citizen import CITIZEN_STATUSES, GENDERS
from app.schemas.common import CamelModel, require_text


def _gender(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip().upper()
    if v not in GENDERS:
        raise ValueError("Gender must be 'MALE' or 'FEMALE'")
    return v


def _optional_text(v: str | None) -> str | None:
    if v is None:
        return None
    return v.strip() or None


class CitizenCreate(CamelModel):
    first_name: str
    middle_name: str | None = None
    last_name: str
    gender: str
    date_of_birth: date
    place_of_birth: str
    nationality: str | None = None
    image_path: str | None = None
    document_path: str | None = None

    @field_validator("first_name", "last_name", "place_of_birth")
    @classmethod
    def _required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)

    @field_validator("middle_name", "nationality", "image_path", "document_path")
    @classmethod
    def _optional(cls, v: str | None) -> str | None:
        return _optional_text(v)

    @field_validator("gender")
    @classmethod
    def _validate_gender(cls, v: str) -> str:
        return _gender(v)  # type: ignore[return-value]


class CitizenUpdate(CamelModel):
    national_id: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    place_of_birth: str | None = None
    nationality: str | None = None
    image_path: str | None = None
    document_path: str | None = None

    @field_validator("national_id")
    @classmethod
    def _key(cls, v: str) -> str:
        return require_text(v, "nationalId")

    @field_validator("first_name", "last_name", "place_of_birth", "nationality")
    @classmethod
    def _not_blank(cls, v: str | None, info) -> str | None:
        if v is None:
            return v
        return require_text(v, info.field_name)

    @field_validator("middle_name", "image_path", "document_path")
    @classmethod
    def _optional(cls, v: str | None) -> str | None:
        return _optional_text(v)

    @field_validator("gender")
    @classmethod
    def _validate_gender(cls, v: str | None) -> str | None:
        return _gender(v)


class CitizenStatusUpdate(CamelModel):
    national_id: str
    status: str

    @field_validator("national_id")
    @classmethod
    def _key(cls, v: str) -> str:
        return require_text(v, "nationalId")

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in CITIZEN_STATUSES:
            raise ValueError("Status must be 'ACTIVE' or 'DECEASED'")
        return v


class CitizenKey(CamelModel):
    national_id: str

    @field_validator("national_id")
    @classmethod
    def _key(cls, v: str) -> str:
        return require_text(v, "nationalId")


class CitizenRestoreRequest(CamelModel):
    national_id: str | None = None
    restore_all: bool = False


class CitizenPurgeRequest(CamelModel):
    national_id: str | None = None
    delete_all: bool = False


class CitizenRead(CamelModel):
    id: int
    national_id: str
    first_name: str
    middle_name: str | None
    last_name: str
    full_name: str
    gender: str
    date_of_birth: date
    place_of_birth: str
    nationality: str
    status: str
    image_path: str | None = None
    document_path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

