"""
User model — back-office accounts (officers, administrators, viewers).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from app.db.base import Base

USER_STATUSES = ("ACTIVE", "DISABLED", "DELETED")


class User(Base):
    __tablename__ = "users"
    # Usernames only have to be unique among rows that are not in the trash
    __table_args__ = (
        Index(
            "uq_users_username_live",
            "username",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    username: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    password_hash: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    role_id: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="ACTIVE",
        server_default="ACTIVE",
    )  # ACTIVE | DISABLED | DELETED
    phone_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    profile_picture_path: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
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

    role = relationship("Role", lazy="joined")
