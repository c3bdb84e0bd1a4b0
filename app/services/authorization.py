"""
Authorization gate — decides per request whether a session may act.

Session problems raise ``Unauthenticated``; a valid session lacking the
permission raises ``Forbidden`` naming only the requested code(s).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, Unauthenticated
from app.services.rbac import get_user_permissions
from app.services.session_store import EXPIRED, Session, SessionStatus

logger = logging.getLogger(__name__)


def require_session(session: Session | SessionStatus) -> Session:
    if isinstance(session, Session):
        return session
    if session is EXPIRED:
        raise Unauthenticated("Session expired. Please login again.", expired=True)
    raise Unauthenticated()


async def require_permission(
    db: AsyncSession, session: Session | SessionStatus, code: str
) -> Session:
    live = require_session(session)
    if code not in await get_user_permissions(db, live.user_id):
        logger.warning("Permission denied: user %s lacks %s", live.user_id, code)
        raise Forbidden(codes=[code])
    return live


async def require_any_permission(
    db: AsyncSession, session: Session | SessionStatus, codes: Sequence[str]
) -> Session:
    live = require_session(session)
    held = await get_user_permissions(db, live.user_id)
    if not held.intersection(codes):
        logger.warning("Permission denied: user %s holds none of %s", live.user_id, list(codes))
        raise Forbidden(codes=codes, mode="ANY")
    return live


async def require_all_permissions(
    db: AsyncSession, session: Session | SessionStatus, codes: Sequence[str]
) -> Session:
    live = require_session(session)
    held = await get_user_permissions(db, live.user_id)
    missing = [c for c in codes if c not in held]
    if missing:
        # The missing subset goes to the log only
        logger.warning("Permission denied: user %s missing %s", live.user_id, missing)
        raise Forbidden(codes=codes, mode="ALL")
    return live
