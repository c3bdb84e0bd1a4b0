"""Response envelopes shared by every endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class ListEnvelope(CamelModel, Generic[T]):
    success: bool = True
    data: list[T]
    count: int


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class CountResponse(CamelModel):
    success: bool = True
    message: str
    count: int


def require_text(v: str | None, field: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{field} is required")
    return v
