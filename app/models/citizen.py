"""
Citizen & status-change models — the registry itself.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String

from app.db.base import Base

GENDERS = ("MALE", "FEMALE")
CITIZEN_STATUSES = ("ACTIVE", "DECEASED")


class Citizen(Base):
    __tablename__ = "citizens"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    national_id: str = Column(String(10), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    middle_name: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    last_name: str = Column(String(100), nullable=False, index=True)  # type: ignore[assignment]
    gender: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # MALE | FEMALE
    date_of_birth: date = Column(Date, nullable=False)  # type: ignore[assignment]
    place_of_birth: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    nationality: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="ACTIVE",
        server_default="ACTIVE",
    )  # ACTIVE | DECEASED
    image_path: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    document_path: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime | None = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    deleted_at: datetime | None = Column(DateTime(timezone=True), nullable=True, index=True)  # type: ignore[assignment]

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class CitizenStatusChange(Base):
    __tablename__ = "citizen_status_changes"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    national_id: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]
    old_status: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    new_status: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    changed_by: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    changed_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
