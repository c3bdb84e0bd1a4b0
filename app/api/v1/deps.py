"""
FastAPI dependencies — database session, session cookie and permission guards.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import unsign_session_id
from app.db.session import async_session_factory
from app.services import authorization as authz
from app.services.session_store import Session, SessionManager, SessionStatus


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Session dependencies ────────────────────────────────────────────
def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def read_session_id(request: Request) -> str | None:
    """Session id from the signed cookie; ``None`` if absent or tampered with."""
    return unsign_session_id(request.cookies.get(settings.SESSION_COOKIE_NAME))


async def get_session_state(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> Session | SessionStatus:
    """Validate (and slide) the caller's session. Runs before any permission check."""
    return await manager.validate(read_session_id(request))


async def get_current_session(
    state: Session | SessionStatus = Depends(get_session_state),
) -> Session:
    return authz.require_session(state)


# ── Permission guards ───────────────────────────────────────────────
def require_permission(code: str):
    async def _guard(
        state: Session | SessionStatus = Depends(get_session_state),
        db: AsyncSession = Depends(get_db),
    ) -> Session:
        return await authz.require_permission(db, state, code)

    return _guard


def require_any_permission(*codes: str):
    async def _guard(
        state: Session | SessionStatus = Depends(get_session_state),
        db: AsyncSession = Depends(get_db),
    ) -> Session:
        return await authz.require_any_permission(db, state, codes)

    return _guard


def require_all_permissions(*codes: str):
    async def _guard(
        state: Session | SessionStatus = Depends(get_session_state),
        db: AsyncSession = Depends(get_db),
    ) -> Session:
        return await authz.require_all_permissions(db, state, codes)

    return _guard
