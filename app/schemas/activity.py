from __future__ import annotations

from datetime import datetime

from app.schemas.common import CamelModel


class ActivityRead(CamelModel):
    id: int
    action: str
    entity_type: str
    entity_id: str | None = None
    description: str
    performed_by: int | None = None
    performed_by_username: str | None = None
    created_at: datetime | None = None
