"""
Citizen endpoints — registration, lookup, edits and the citizen trash.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_permission
from app.core.errors import ValidationError
from app.schemas.citizen import (CitizenCreate, CitizenKey, CitizenPurgeRequest,
                                 CitizenRead, CitizenRestoreRequest,
                                 CitizenStatusUpdate, CitizenUpdate)
from app.schemas.common import CountResponse, Envelope, ListEnvelope, MessageResponse
from app.services import citizen_service
from app.services.session_store import Session

router = APIRouter(prefix="/citizens", tags=["citizens"])


@router.post("/create", response_model=Envelope[CitizenRead], status_code=status.HTTP_201_CREATED)
async def create_citizen(
    body: CitizenCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("CREATE_CITIZEN")),
):
    citizen = await citizen_service.create_citizen(db, body, session.user_id)
    return Envelope(
        message="Citizen registered successfully",
        data=CitizenRead.model_validate(citizen),
    )


@router.get("/get", response_model=Envelope[CitizenRead])
async def get_citizen(
    national_id: str = Query(..., alias="nationalId", min_length=1),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(require_permission("VIEW_CITIZEN")),
):
    citizen = await citizen_service.get_citizen(db, national_id.strip())
    return Envelope(data=CitizenRead.model_validate(citizen))


@router.get("/search", response_model=ListEnvelope[CitizenRead])
async def search_citizens(
    q: str | None = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(require_permission("VIEW_CITIZEN")),
):
    citizens = await citizen_service.search_citizens(db, q, limit, offset)
    data = [CitizenRead.model_validate(c) for c in citizens]
    return ListEnvelope(data=data, count=len(data))


@router.post("/update", response_model=Envelope[CitizenRead])
async def update_citizen(
    body: CitizenUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("UPDATE_CITIZEN")),
):
    citizen = await citizen_service.update_citizen(db, body, session.user_id)
    return Envelope(
        message="Citizen updated successfully",
        data=CitizenRead.model_validate(citizen),
    )


@router.post("/update_status", response_model=Envelope[CitizenRead])
async def update_citizen_status(
    body: CitizenStatusUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("UPDATE_CITIZEN_STATUS")),
):
    citizen = await citizen_service.update_citizen_status(
        db, body.national_id, body.status, session.user_id
    )
    return Envelope(
        message=f"Citizen status is {citizen.status}",
        data=CitizenRead.model_validate(citizen),
    )


@router.post("/delete", response_model=MessageResponse)
async def delete_citizen(
    body: CitizenKey,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("DELETE_CITIZEN")),
):
    await citizen_service.delete_citizen(db, body.national_id, session.user_id)
    return MessageResponse(message="Citizen moved to trash")


# ── Trash ───────────────────────────────────────────────────────────
@router.get("/trash/list", response_model=ListEnvelope[CitizenRead])
async def list_citizen_trash(
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    db: AsyncSession = Depends(get_db),
    _: Session = Depends(require_permission("VIEW_CITIZEN")),
):
    citizens = await citizen_service.list_deleted_citizens(db, limit, offset)
    data = [CitizenRead.model_validate(c) for c in citizens]
    return ListEnvelope(data=data, count=len(data))


@router.post("/trash/restore", response_model=CountResponse)
async def restore_citizen(
    body: CitizenRestoreRequest,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("RESTORE_CITIZEN")),
):
    if body.restore_all:
        count = await citizen_service.restore_all_citizens(db, session.user_id)
        return CountResponse(message=f"Restored {count} citizen(s)", count=count)
    if not (body.national_id or "").strip():
        raise ValidationError("nationalId or restoreAll is required")
    await citizen_service.restore_citizen(db, body.national_id.strip(), session.user_id)
    return CountResponse(message="Citizen restored", count=1)


@router.post("/trash/delete_permanent", response_model=CountResponse)
async def purge_citizen(
    body: CitizenPurgeRequest,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_permission("DELETE_CITIZEN")),
):
    if body.delete_all:
        count = await citizen_service.purge_all_citizens(db, session.user_id)
        return CountResponse(message=f"Permanently deleted {count} citizen(s)", count=count)
    if not (body.national_id or "").strip():
        raise ValidationError("nationalId or deleteAll is required")
    await citizen_service.purge_citizen(db, body.national_id.strip(), session.user_id)
    return CountResponse(message="Citizen permanently deleted", count=1)
