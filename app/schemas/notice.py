"""Pydantic schemas for system notices."""

from __future__ import annotations

from datetime import datetime

from pydantic import field_validator

from app.schemas.common import CamelModel, require_text


class NoticeCreate(CamelModel):
    title: str
    message: str
    type: str | None = "INFO"
    expires_at: datetime | None = None

    @field_validator("title", "message")
    @classmethod
    def _required(cls, v: str, info) -> str:
        return require_text(v, info.field_name)


class NoticeKey(CamelModel):
    id: int


class NoticeRead(CamelModel):
    id: int
    title: str
    message: str
    type: str
    created_by: int | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
