"""System notices shown on the dashboard."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import atomic
from app.models.notice import NOTICE_TYPES, SystemNotice
from app.services.activity_service import log_activity
from app.services.soft_delete import SoftDeleteLifecycle, TrashDescriptor, clamp_page

notice_trash = SoftDeleteLifecycle(TrashDescriptor(SystemNotice, key="id", label="Notice"))


def normalize_notice_type(value: str | None) -> str:
    value = (value or "").strip().upper()
    return value if value in NOTICE_TYPES else "INFO"


async def create_notice(
    db: AsyncSession,
    title: str,
    message: str,
    notice_type: str | None,
    expires_at: datetime | None,
    created_by: int | None,
) -> SystemNotice:
    async with atomic(db):
        notice = SystemNotice(
            title=title,
            message=message,
            type=normalize_notice_type(notice_type),
            expires_at=expires_at,
            created_by=created_by,
        )
        db.add(notice)
        await db.flush()
        await log_activity(
            db, "CREATE_NOTICE", "notice", notice.id, f"Posted notice '{title}'", created_by
        )
    return notice


async def list_active_notices(
    db: AsyncSession,
    limit: int = 50,
    now: datetime | None = None,
) -> list[SystemNotice]:
    limit, _ = clamp_page(limit, 0)
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(SystemNotice)
        .where(
            SystemNotice.deleted_at.is_(None),
            or_(SystemNotice.expires_at.is_(None), SystemNotice.expires_at > now),
        )
        .order_by(SystemNotice.created_at.desc(), SystemNotice.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def delete_notice(db: AsyncSession, notice_id: int, performed_by: int | None) -> None:
    async with atomic(db):
        await notice_trash.soft_delete(db, notice_id)
        await log_activity(
            db, "DELETE_NOTICE", "notice", notice_id, f"Removed notice {notice_id}", performed_by
        )
