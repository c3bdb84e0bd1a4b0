"""
Auth endpoints — login, logout and session introspection.

No ``from __future__ import annotations`` here: slowapi wraps ``login`` and
FastAPI has to resolve its annotations through the wrapper.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_session, get_db, get_session_manager,
                             read_session_id)
from app.core.config import settings
from app.core.errors import Forbidden, NotFound
from app.core.security import clear_session_cookie, sign_session_id
from app.schemas.auth import (CheckResponse, LoginRequest, LoginResponse,
                              MeData, MeResponse, SessionUser)
from app.schemas.common import MessageResponse
from app.schemas.user import RoleRead
from app.services import user_service
from app.services.rbac import get_user_menus, get_user_permissions, get_user_role
from app.services.session_store import Session, SessionManager

logger = logging.getLogger(__name__)

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=sign_session_id(session.session_id),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path=settings.SESSION_COOKIE_PATH,
        # Without max_age the cookie dies with the browser session
        max_age=settings.REMEMBER_ME_DAYS * 24 * 60 * 60 if session.remember_me else None,
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
) -> LoginResponse:
    """Check credentials and start a brand-new session (the old id is dropped)."""
    user = await user_service.authenticate(db, body.username, body.password)

    session = await manager.create_session(
        user_id=user.id,
        username=user.username,
        role=user.role.name if user.role is not None else None,
        remember_me=body.remember_me,
        previous_session_id=read_session_id(request),
    )
    _set_session_cookie(response, session)
    logger.info("User %s logged in (remember_me=%s)", user.username, body.remember_me)

    return LoginResponse(
        user=SessionUser(id=user.id, username=user.username, role=session.role),
        session_expires_at=manager.expires_at(session),
        session_timeout=manager.timeout_seconds,
        remember_me=session.remember_me,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> MessageResponse:
    """Destroy the server-side session and clear the cookie. Always succeeds."""
    await manager.destroy(read_session_id(request))
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/check", response_model=CheckResponse)
async def check(session: Session = Depends(get_current_session)) -> CheckResponse:
    return CheckResponse(
        user=SessionUser(id=session.user_id, username=session.username, role=session.role)
    )


@router.get("/me", response_model=MeResponse)
async def me(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """Full profile with live permissions and the visible menu tree."""
    try:
        user = await user_service.get_user(db, session.user_id)
    except NotFound:
        raise Forbidden("User account is no longer available") from None
    if await get_user_role(db, user.id) is None:
        raise Forbidden("User has no active role")

    permissions = sorted(await get_user_permissions(db, user.id))
    menus = [node.to_dict() for node in await get_user_menus(db, user.id)]
    data = MeData(
        id=user.id,
        username=user.username,
        role=RoleRead.model_validate(user.role) if user.role is not None else None,
        status=user.status,
        phone_number=user.phone_number,
        profile_picture_path=user.profile_picture_path,
        created_at=user.created_at,
        permissions=permissions,
        menus=menus,
    )
    return MeResponse(data=data)
