"""
User management endpoints — all gated by MANAGE_USERS.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_permission
from app.core.errors import ValidationError
from app.schemas.common import CountResponse, Envelope, ListEnvelope, MessageResponse
from app.schemas.user import (PasswordReset, UserCreate, UserKey, UserPurgeRequest,
                              UserRead, UserRestoreRequest, UserStatusUpdate,
                              UserUpdate)
from app.services import user_service
from app.services.session_store import Session

router = APIRouter(prefix="/users", tags=["users"])

manage_users = require_permission("MANAGE_USERS")


@router.post("/create", response_model=Envelope[UserRead], status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    user = await user_service.create_user(db, body, session.user_id)
    return Envelope(message="User created successfully", data=UserRead.model_validate(user))


@router.get("/list", response_model=ListEnvelope[UserRead])
async def list_users(
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(manage_users),
):
    users = await user_service.list_users(db, limit, offset)
    data = [UserRead.model_validate(u) for u in users]
    return ListEnvelope(data=data, count=len(data))


@router.get("/get", response_model=Envelope[UserRead])
async def get_user(
    user_id: int = Query(..., alias="id"),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(manage_users),
):
    user = await user_service.get_user(db, user_id)
    return Envelope(data=UserRead.model_validate(user))


@router.post("/update", response_model=Envelope[UserRead])
async def update_user(
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    user = await user_service.update_user(db, body, session.user_id)
    return Envelope(message="User updated successfully", data=UserRead.model_validate(user))


@router.post("/status", response_model=Envelope[UserRead])
async def change_user_status(
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    user = await user_service.change_user_status(db, body.id, body.status, session.user_id)
    return Envelope(message=f"User status is {user.status}", data=UserRead.model_validate(user))


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: PasswordReset,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    await user_service.reset_password(db, body.id, body.password, session.user_id)
    return MessageResponse(message="Password reset successfully")


@router.post("/delete", response_model=MessageResponse)
async def delete_user(
    body: UserKey,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    await user_service.delete_user(db, body.id, session.user_id)
    return MessageResponse(message="User moved to trash")


# ── Trash ───────────────────────────────────────────────────────────
@router.get("/trash/list", response_model=ListEnvelope[UserRead])
async def list_user_trash(
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(manage_users),
):
    users = await user_service.list_deleted_users(db, limit, offset)
    data = [UserRead.model_validate(u) for u in users]
    return ListEnvelope(data=data, count=len(data))


@router.post("/trash/restore", response_model=CountResponse)
async def restore_user(
    body: UserRestoreRequest,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    if body.restore_all:
        count = await user_service.restore_all_users(db, session.user_id)
        return CountResponse(message=f"Restored {count} user(s)", count=count)
    if body.id is None:
        raise ValidationError("id or restoreAll is required")
    await user_service.restore_user(db, body.id, session.user_id)
    return CountResponse(message="User restored", count=1)


@router.post("/trash/delete_permanent", response_model=CountResponse)
async def purge_user(
    body: UserPurgeRequest,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(manage_users),
):
    if body.delete_all:
        count = await user_service.purge_all_users(db, session.user_id)
        return CountResponse(message=f"Permanently deleted {count} user(s)", count=count)
    if body.id is None:
        raise ValidationError("id or deleteAll is required")
    await user_service.purge_user(db, body.id, session.user_id)
    return CountResponse(message="User permanently deleted", count=1)
