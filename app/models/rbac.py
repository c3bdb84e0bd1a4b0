"""
RBAC graph — roles, permissions and menus.

Roles and menus both map to permissions through join tables; menus also
reference themselves to form the navigation tree.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from app.db.base import Base

ADMIN_ROLE = "ADMIN"

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        Integer,
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

menu_permissions = Table(
    "menu_permissions",
    Base.metadata,
    Column("menu_id", Integer, ForeignKey("menus.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        Integer,
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Role(Base):
    __tablename__ = "roles"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(50), unique=True, nullable=False)  # type: ignore[assignment]
    # ADMIN | OFFICER | VIEWER
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]


class Permission(Base):
    __tablename__ = "permissions"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    code: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]


class Menu(Base):
    __tablename__ = "menus"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    label: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    route: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    icon: str | None = Column(String(50), nullable=True)  # type: ignore[assignment]
    order_index: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    parent_id: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("menus.id", ondelete="CASCADE"),
        nullable=True,
    )
