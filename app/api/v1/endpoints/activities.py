"""
Activity log endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_permission
from app.schemas.activity import ActivityRead
from app.schemas.common import ListEnvelope
from app.services.activity_service import get_recent_activities
from app.services.session_store import Session

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("/recent", response_model=ListEnvelope[ActivityRead])
async def recent_activities(
    limit: int = Query(default=20),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(require_permission("VIEW_ACTIVITIES")),
):
    rows = await get_recent_activities(db, limit)
    data = [
        ActivityRead(
            id=a.id,
            action=a.action,
            entity_type=a.entity_type,
            entity_id=a.entity_id,
            description=a.description,
            performed_by=a.performed_by,
            performed_by_username=username,
            created_at=a.created_at,
        )
        for a, username in rows
    ]
    return ListEnvelope(data=data, count=len(data))
