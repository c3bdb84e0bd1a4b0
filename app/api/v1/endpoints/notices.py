"""
System notice endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_any_permission, require_permission
from app.schemas.common import Envelope, ListEnvelope, MessageResponse
from app.schemas.notice import NoticeCreate, NoticeKey, NoticeRead
from app.services import notice_service
from app.services.session_store import Session

router = APIRouter(prefix="/notices", tags=["notices"])


@router.get("/list", response_model=ListEnvelope[NoticeRead])
async def list_notices(
    limit: int = Query(default=50),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(require_any_permission("VIEW_NOTICES", "MANAGE_NOTICES")),
):
    notices = await notice_service.list_active_notices(db, limit)
    data = [NoticeRead.model_validate(n) for n in notices]
    return ListEnvelope(data=data, count=len(data))


@router.post("/create", response_model=Envelope[NoticeRead], status_code=status.HTTP_201_CREATED)
async def create_notice(
    body: NoticeCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("MANAGE_NOTICES")),
):
    notice = await notice_service.create_notice(
        db, body.title, body.message, body.type, body.expires_at, session.user_id
    )
    return Envelope(message="Notice created", data=NoticeRead.model_validate(notice))


@router.post("/delete", response_model=MessageResponse)
async def delete_notice(
    body: NoticeKey,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("MANAGE_NOTICES")),
):
    await notice_service.delete_notice(db, body.id, session.user_id)
    return MessageResponse(message="Notice deleted")
