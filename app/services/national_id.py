"""National ID generation — 10-digit numeric strings, unique across all citizens."""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import BigInteger, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.citizen import Citizen

logger = logging.getLogger(__name__)

ID_LENGTH = 10
MAX_RANDOM_ATTEMPTS = 100


def _random_id() -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(ID_LENGTH))


async def _exists(db: AsyncSession, national_id: str) -> bool:
    # Trashed rows count: a restored citizen must get its old number back
    result = await db.execute(select(Citizen.id).where(Citizen.national_id == national_id))
    return result.first() is not None


async def generate_national_id(
    db: AsyncSession, max_attempts: int = MAX_RANDOM_ATTEMPTS
) -> str:
    for _ in range(max_attempts):
        candidate = _random_id()
        if not await _exists(db, candidate):
            return candidate

    logger.warning("Random national ID space exhausted after %d tries; going sequential", max_attempts)
    result = await db.execute(select(func.max(cast(Citizen.national_id, BigInteger))))
    next_id = (result.scalar() or 0) + 1
    candidate = str(next_id).zfill(ID_LENGTH)
    while await _exists(db, candidate):
        next_id += 1
        candidate = str(next_id).zfill(ID_LENGTH)
    return candidate
