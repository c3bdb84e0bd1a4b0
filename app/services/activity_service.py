"""
System activity trail.

``log_activity`` only stages the row; it is committed (or rolled back)
together with the mutation it describes.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import SystemActivity
from app.models.user import User
from app.services.soft_delete import clamp_page


async def log_activity(
    db: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: str | int | None,
    description: str,
    performed_by: int | None,
) -> SystemActivity:
    activity = SystemActivity(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        description=description[:500],
        performed_by=performed_by,
    )
    db.add(activity)
    await db.flush()
    return activity


async def get_recent_activities(
    db: AsyncSession, limit: int = 20
) -> list[tuple[SystemActivity, str | None]]:
    limit, _ = clamp_page(limit, 0)
    result = await db.execute(
        select(SystemActivity, User.username)
        .outerjoin(User, SystemActivity.performed_by == User.id)
        .order_by(SystemActivity.created_at.desc(), SystemActivity.id.desc())
        .limit(limit)
    )
    return [(activity, username) for activity, username in result.all()]
