"""
Citizen registry operations.

Every mutation runs inside ``atomic(db)`` together with its activity-log
row. Reads only ever see live (not trashed) citizens; the trash has its
own listing.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import Conflict, NotFound, ValidationError
from app.db.session import atomic
from app.models.citizen import Citizen, CitizenStatusChange
from app.schemas.citizen import CitizenCreate, CitizenUpdate
from app.services.activity_service import log_activity
from app.services.national_id import generate_national_id
from app.services.soft_delete import SoftDeleteLifecycle, TrashDescriptor, clamp_page

logger = logging.getLogger(__name__)

MAX_AGE_YEARS = 100
_REQUIRED_FIELDS = ("first_name", "last_name", "gender", "date_of_birth", "place_of_birth", "nationality")

citizen_trash = SoftDeleteLifecycle(TrashDescriptor(Citizen, key="national_id", label="Citizen"))


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in ``term`` matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def validate_date_of_birth(value: date, today: date | None = None) -> date:
    """Accept dates from exactly 100 years ago up to and including today."""
    today = today or date.today()
    if value > today:
        raise ValidationError("Date of birth cannot be in the future")
    if value < _years_before(today, MAX_AGE_YEARS):
        raise ValidationError(f"Date of birth cannot be more than {MAX_AGE_YEARS} years ago")
    return value


async def _live_citizen(db: AsyncSession, national_id: str) -> Citizen | None:
    result = await db.execute(
        select(Citizen).where(Citizen.national_id == national_id, Citizen.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


# ── CRUD ────────────────────────────────────────────────────────────
async def create_citizen(db: AsyncSession, data: CitizenCreate, performed_by: int | None) -> Citizen:
    validate_date_of_birth(data.date_of_birth)
    try:
        async with atomic(db):
            citizen = Citizen(
                national_id=await generate_national_id(db),
                first_name=data.first_name,
                middle_name=data.middle_name,
                last_name=data.last_name,
                gender=data.gender,
                date_of_birth=data.date_of_birth,
                place_of_birth=data.place_of_birth,
                nationality=data.nationality or settings.DEFAULT_NATIONALITY,
                status="ACTIVE",
                image_path=data.image_path,
                document_path=data.document_path,
            )
            db.add(citizen)
            await db.flush()
            await log_activity(
                db,
                "CREATE_CITIZEN",
                "citizen",
                citizen.national_id,
                f"Registered citizen {citizen.full_name} ({citizen.national_id})",
                performed_by,
            )
    except IntegrityError as exc:
        raise Conflict("National ID already exists") from exc
    logger.info("Citizen %s registered by user %s", citizen.national_id, performed_by)
    return citizen


async def get_citizen(db: AsyncSession, national_id: str) -> Citizen:
    citizen = await _live_citizen(db, national_id)
    if citizen is None:
        raise NotFound("Citizen not found")
    return citizen


async def search_citizens(
    db: AsyncSession, q: str | None = None, limit: int = 50, offset: int = 0
) -> list[Citizen]:
    limit, offset = clamp_page(limit, offset)
    stmt = select(Citizen).where(Citizen.deleted_at.is_(None))
    term = (q or "").strip()
    if term:
        pattern = _like_pattern(term)
        full_name = (
            Citizen.first_name
            + " "
            + func.coalesce(Citizen.middle_name, "")
            + " "
            + Citizen.last_name
        )
        stmt = stmt.where(
            or_(
                Citizen.national_id.ilike(pattern, escape="\\"),
                Citizen.first_name.ilike(pattern, escape="\\"),
                Citizen.middle_name.ilike(pattern, escape="\\"),
                Citizen.last_name.ilike(pattern, escape="\\"),
                full_name.ilike(pattern, escape="\\"),
            )
        ).order_by(Citizen.last_name, Citizen.first_name, Citizen.id)
    else:
        stmt = stmt.order_by(Citizen.created_at.desc(), Citizen.id.desc())
    result = await db.execute(stmt.limit(limit).offset(offset))
    return list(result.scalars().all())


async def update_citizen(db: AsyncSession, data: CitizenUpdate, performed_by: int | None) -> Citizen:
    changes = data.model_dump(exclude_unset=True, exclude={"national_id"})
    if not changes:
        raise ValidationError("No fields to update")
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be empty")
    if "date_of_birth" in changes:
        validate_date_of_birth(changes["date_of_birth"])

    async with atomic(db):
        citizen = await get_citizen(db, data.national_id)
        for field, value in changes.items():
            setattr(citizen, field, value)
        await db.flush()
        await log_activity(
            db,
            "UPDATE_CITIZEN",
            "citizen",
            citizen.national_id,
            f"Updated citizen {citizen.national_id}: {', '.join(sorted(changes))}",
            performed_by,
        )
    await db.refresh(citizen)
    return citizen


async def update_citizen_status(
    db: AsyncSession, national_id: str, new_status: str, performed_by: int | None
) -> Citizen:
    async with atomic(db):
        citizen = await get_citizen(db, national_id)
        old_status = citizen.status
        if old_status == new_status:
            return citizen
        citizen.status = new_status
        db.add(
            CitizenStatusChange(
                national_id=national_id,
                old_status=old_status,
                new_status=new_status,
                changed_by=performed_by,
            )
        )
        await db.flush()
        await log_activity(
            db,
            "UPDATE_CITIZEN_STATUS",
            "citizen",
            national_id,
            f"Citizen {national_id} status changed from {old_status} to {new_status}",
            performed_by,
        )
    await db.refresh(citizen)
    return citizen


# ── Trash ───────────────────────────────────────────────────────────
async def delete_citizen(db: AsyncSession, national_id: str, performed_by: int | None) -> None:
    async with atomic(db):
        await citizen_trash.soft_delete(db, national_id)
        await log_activity(
            db, "DELETE_CITIZEN", "citizen", national_id,
            f"Moved citizen {national_id} to trash", performed_by,
        )


async def list_deleted_citizens(db: AsyncSession, limit: int = 50, offset: int = 0) -> list[Citizen]:
    return await citizen_trash.list_trash(db, limit, offset)


async def restore_citizen(db: AsyncSession, national_id: str, performed_by: int | None) -> None:
    async with atomic(db):
        await citizen_trash.restore(db, national_id)
        await log_activity(
            db, "RESTORE_CITIZEN", "citizen", national_id,
            f"Restored citizen {national_id} from trash", performed_by,
        )


async def restore_all_citizens(db: AsyncSession, performed_by: int | None) -> int:
    async with atomic(db):
        count = await citizen_trash.restore_all(db)
        if count:
            await log_activity(
                db, "RESTORE_ALL_CITIZENS", "citizen", None,
                f"Restored {count} citizen(s) from trash", performed_by,
            )
    return count


async def purge_citizen(db: AsyncSession, national_id: str, performed_by: int | None) -> None:
    async with atomic(db):
        await citizen_trash.purge(db, national_id)
        await log_activity(
            db, "PURGE_CITIZEN", "citizen", national_id,
            f"Permanently deleted citizen {national_id}", performed_by,
        )


async def purge_all_citizens(db: AsyncSession, performed_by: int | None) -> int:
    async with atomic(db):
        count = await citizen_trash.purge_all(db)
        if count:
            await log_activity(
                db, "PURGE_ALL_CITIZENS", "citizen", None,
                f"Permanently deleted {count} citizen(s) from trash", performed_by,
            )
    return count
