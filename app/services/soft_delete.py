"""
Generic trash lifecycle shared by citizens, users and notices.

    ACTIVE (deleted_at IS NULL) ──soft_delete──▶ TRASHED (deleted_at set)
    TRASHED ──restore──▶ ACTIVE
    TRASHED ──purge──▶ row removed

Every transition is a single conditional statement, so a row that is not in
the expected state is simply not matched and the call raises ``NotFound``.
None of these methods commit; callers run them inside ``atomic(db)``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def clamp_page(limit: int, offset: int) -> tuple[int, int]:
    return max(1, min(MAX_PAGE_SIZE, int(limit))), max(0, int(offset))


@dataclass(frozen=True)
class TrashDescriptor:
    """Which table a lifecycle drives and how rows are addressed."""

    model: type
    key: str  # attribute used to address a single row
    label: str  # used in messages, e.g. "Citizen"
    status_attr: str | None = None
    trashed_status: str | None = None
    restored_status: str | None = None


class SoftDeleteLifecycle:
    def __init__(
        self,
        descriptor: TrashDescriptor,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.d = descriptor
        self.clock = clock

    # ── column helpers ──────────────────────────────────────────────
    @property
    def _model(self) -> Any:
        return self.d.model

    @property
    def _key(self) -> Any:
        return getattr(self._model, self.d.key)

    @property
    def _deleted_at(self) -> Any:
        return self._model.deleted_at

    def _values(self, deleted_at: datetime | None, status: str | None) -> dict[str, Any]:
        values: dict[str, Any] = {"deleted_at": deleted_at}
        if self.d.status_attr and status:
            values[self.d.status_attr] = status
        # Trash transitions are not edits; keep updated_at as it was
        if hasattr(self._model, "updated_at"):
            values["updated_at"] = self._model.updated_at
        return values

    # ── transitions ─────────────────────────────────────────────────
    async def soft_delete(self, db: AsyncSession, key: Any, *criteria: Any) -> bool:
        """Move one live row to the trash. Extra ``criteria`` must also hold."""
        result = await db.execute(
            update(self._model)
            .where(self._key == key, self._deleted_at.is_(None), *criteria)
            .values(**self._values(self.clock(), self.d.trashed_status))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFound(f"{self.d.label} not found or already deleted")
        logger.info("%s %s moved to trash", self.d.label, key)
        return True

    async def list_trash(self, db: AsyncSession, limit: int = 50, offset: int = 0) -> list[Any]:
        limit, offset = clamp_page(limit, offset)
        result = await db.execute(
            select(self._model)
            .where(self._deleted_at.is_not(None))
            .order_by(self._deleted_at.desc(), self._model.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def restore(self, db: AsyncSession, key: Any) -> bool:
        count = await self._restore_where(db, self._key == key)
        if count == 0:
            raise NotFound(f"{self.d.label} not found in trash")
        logger.info("%s %s restored from trash", self.d.label, key)
        return True

    async def restore_all(self, db: AsyncSession) -> int:
        count = await self._restore_where(db)
        logger.info("Restored %d %s row(s) from trash", count, self.d.label.lower())
        return count

    async def purge(self, db: AsyncSession, key: Any) -> bool:
        result = await db.execute(
            delete(self._model)
            .where(self._key == key, self._deleted_at.is_not(None))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFound(f"{self.d.label} not found in trash")
        logger.warning("%s %s permanently deleted", self.d.label, key)
        return True

    async def purge_all(self, db: AsyncSession) -> int:
        result = await db.execute(
            delete(self._model)
            .where(self._deleted_at.is_not(None))
            .execution_options(synchronize_session="fetch")
        )
        logger.warning("Permanently deleted %d %s row(s)", result.rowcount, self.d.label.lower())
        return result.rowcount

    async def _restore_where(self, db: AsyncSession, *criteria: Any) -> int:
        try:
            result = await db.execute(
                update(self._model)
                .where(self._deleted_at.is_not(None), *criteria)
                .values(**self._values(None, self.d.restored_status))
                .execution_options(synchronize_session="fetch")
            )
        except IntegrityError as exc:
            # e.g. a username reused while the old account sat in the trash
            raise Conflict(
                f"{self.d.label} cannot be restored: it conflicts with an existing record"
            ) from exc
        return result.rowcount
