"""
SystemActivity model — append-only trail of back-office actions.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class SystemActivity(Base):
    __tablename__ = "system_activities"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    action: str = Column(String(50), nullable=False)  # type: ignore[assignment]  # e.g. CREATE_CITIZEN
    entity_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]  # citizen | user
    entity_id: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    description: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    performed_by: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
