"""Tests for the generic trash lifecycle, driven directly against the database."""

from datetime import date, datetime

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, NotFound
from app.models.citizen import Citizen
from app.models.user import User
from app.services.soft_delete import (MAX_PAGE_SIZE, SoftDeleteLifecycle, TrashDescriptor,
                                      clamp_page)

FIXED = datetime(2024, 1, 1, 12, 0, 0)


def _lifecycle(clock=lambda: FIXED) -> SoftDeleteLifecycle:
    return SoftDeleteLifecycle(TrashDescriptor(Citizen, key="national_id", label="Citizen"), clock)


async def _citizen(db: AsyncSession, national_id: str) -> Citizen:
    citizen = Citizen(
        national_id=national_id,
        first_name="Test",
        last_name=f"Person{national_id[-2:]}",
        gender="MALE",
        date_of_birth=date(1980, 1, 1),
        place_of_birth="Baidoa",
        nationality="Somali",
    )
    db.add(citizen)
    await db.commit()
    return citizen


async def _reload(db: AsyncSession, national_id: str) -> Citizen | None:
    result = await db.execute(
        select(Citizen)
        .where(Citizen.national_id == national_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def test_clamp_page():
    assert clamp_page(0, -1) == (1, 0)
    assert clamp_page(500, 10) == (MAX_PAGE_SIZE, 10)
    assert clamp_page(25, 5) == (25, 5)


@pytest.mark.asyncio
async def test_soft_delete_stamps_row_and_keeps_updated_at(db_session: AsyncSession):
    await _citizen(db_session, "1000000001")
    before = await _reload(db_session, "1000000001")
    updated_at = before.updated_at

    assert await _lifecycle().soft_delete(db_session, "1000000001") is True
    await db_session.commit()

    after = await _reload(db_session, "1000000001")
    assert after.deleted_at == FIXED
    assert after.updated_at == updated_at


@pytest.mark.asyncio
async def test_soft_delete_missing_or_trashed_raises(db_session: AsyncSession):
    lifecycle = _lifecycle()
    with pytest.raises(NotFound) as exc:
        await lifecycle.soft_delete(db_session, "9999999999")
    assert exc.value.message == "Citizen not found or already deleted"

    await _citizen(db_session, "1000000001")
    await lifecycle.soft_delete(db_session, "1000000001")
    with pytest.raises(NotFound):
        await lifecycle.soft_delete(db_session, "1000000001")


@pytest.mark.asyncio
async def test_restore_requires_trashed_row(db_session: AsyncSession):
    lifecycle = _lifecycle()
    await _citizen(db_session, "1000000001")
    with pytest.raises(NotFound) as exc:
        await lifecycle.restore(db_session, "1000000001")
    assert exc.value.message == "Citizen not found in trash"

    await lifecycle.soft_delete(db_session, "1000000001")
    assert await lifecycle.restore(db_session, "1000000001") is True
    await db_session.commit()
    assert (await _reload(db_session, "1000000001")).deleted_at is None


@pytest.mark.asyncio
async def test_purge_is_terminal(db_session: AsyncSession):
    lifecycle = _lifecycle()
    await _citizen(db_session, "1000000001")
    with pytest.raises(NotFound):
        await lifecycle.purge(db_session, "1000000001")

    await lifecycle.soft_delete(db_session, "1000000001")
    assert await lifecycle.purge(db_session, "1000000001") is True
    await db_session.commit()

    assert await _reload(db_session, "1000000001") is None
    with pytest.raises(NotFound):
        await lifecycle.restore(db_session, "1000000001")


@pytest.mark.asyncio
async def test_list_trash_orders_newest_first_and_pages(db_session: AsyncSession):
    stamps = iter([datetime(2024, 1, d) for d in (1, 3, 2)])
    lifecycle = _lifecycle(clock=lambda: next(stamps))
    for nid in ("1000000001", "1000000002", "1000000003"):
        await _citizen(db_session, nid)
        await lifecycle.soft_delete(db_session, nid)
    await _citizen(db_session, "1000000004")
    await db_session.commit()

    trash = await lifecycle.list_trash(db_session)
    assert [c.national_id for c in trash] == ["1000000002", "1000000003", "1000000001"]

    page = await lifecycle.list_trash(db_session, limit=1, offset=1)
    assert [c.national_id for c in page] == ["1000000003"]


@pytest.mark.asyncio
async def test_list_trash_breaks_ties_by_id(db_session: AsyncSession):
    lifecycle = _lifecycle()
    for nid in ("1000000001", "1000000002"):
        await _citizen(db_session, nid)
        await lifecycle.soft_delete(db_session, nid)
    trash = await lifecycle.list_trash(db_session)
    assert [c.national_id for c in trash] == ["1000000002", "1000000001"]


@pytest.mark.asyncio
async def test_bulk_restore_and_purge_counts(db_session: AsyncSession):
    lifecycle = _lifecycle()
    for nid in ("1000000001", "1000000002", "1000000003"):
        await _citizen(db_session, nid)
    await lifecycle.soft_delete(db_session, "1000000001")
    await lifecycle.soft_delete(db_session, "1000000002")

    assert await lifecycle.restore_all(db_session) == 2
    assert await lifecycle.restore_all(db_session) == 0

    await lifecycle.soft_delete(db_session, "1000000003")
    assert await lifecycle.purge_all(db_session) == 1
    assert await lifecycle.purge_all(db_session) == 0
    await db_session.commit()
    assert await _reload(db_session, "1000000001") is not None


@pytest.mark.asyncio
async def test_user_lifecycle_tracks_status(db_session: AsyncSession):
    lifecycle = SoftDeleteLifecycle(
        TrashDescriptor(User, key="id", label="User", status_attr="status",
                        trashed_status="DELETED", restored_status="ACTIVE")
    )
    user = User(username="temp", password_hash="x", status="DISABLED")
    db_session.add(user)
    await db_session.commit()

    await lifecycle.soft_delete(db_session, user.id)
    await db_session.commit()
    await db_session.refresh(user)
    assert user.status == "DELETED"

    await lifecycle.restore(db_session, user.id)
    await db_session.commit()
    await db_session.refresh(user)
    assert user.status == "ACTIVE"
    assert user.deleted_at is None


@pytest.mark.asyncio
async def test_restore_into_taken_username_is_conflict(db_session: AsyncSession):
    lifecycle = SoftDeleteLifecycle(TrashDescriptor(User, key="id", label="User"))
    old = User(username="alice", password_hash="x")
    db_session.add(old)
    await db_session.commit()
    await lifecycle.soft_delete(db_session, old.id)
    await db_session.commit()

    db_session.add(User(username="alice", password_hash="y"))
    await db_session.commit()

    with pytest.raises(Conflict):
        await lifecycle.restore(db_session, old.id)
    await db_session.rollback()
