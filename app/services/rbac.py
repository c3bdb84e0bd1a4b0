"""
RBAC lookups — always resolved live from the database.

A user's permissions come from Role → Permission mappings at the moment of
the call, and only while the user is ACTIVE and not in the trash. Nothing here
reads permissions from the session.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.rbac import Menu, Permission, Role, menu_permissions, role_permissions
from app.models.user import User


def _live_user(user_id: int):
    return (User.id == user_id, User.status == "ACTIVE", User.deleted_at.is_(None))


async def get_user_permissions(db: AsyncSession, user_id: int) -> set[str]:
    result = await db.execute(
        select(Permission.code)
        .join(role_permissions, role_permissions.c.permission_id == Permission.id)
        .join(User, User.role_id == role_permissions.c.role_id)
        .where(*_live_user(user_id))
        .distinct()
    )
    return set(result.scalars().all())


async def get_user_role(db: AsyncSession, user_id: int) -> Role | None:
    """Role of an active user, or ``None`` when the user has none or is inactive."""
    result = await db.execute(
        select(Role).join(User, User.role_id == Role.id).where(*_live_user(user_id))
    )
    return result.scalar_one_or_none()


async def has_permission(db: AsyncSession, user_id: int, code: str) -> bool:
    return code in await get_user_permissions(db, user_id)


# ── Menus ───────────────────────────────────────────────────────────
@dataclass
class MenuNode:
    id: int
    label: str
    route: str
    icon: str | None
    order_index: int
    children: list[MenuNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "route": self.route,
            "icon": self.icon,
            "orderIndex": self.order_index,
            "children": [c.to_dict() for c in self.children],
        }


def build_menu_tree(menus: Iterable[Menu]) -> list[MenuNode]:
    """Assemble visible menus into a tree sorted by (order_index, id) at every level.

    A menu whose parent is not among ``menus`` becomes a root.
    """
    menus = list(menus)
    nodes = {
        m.id: MenuNode(
            id=m.id,
            label=m.label,
            route=m.route,
            icon=m.icon,
            order_index=m.order_index or 0,
        )
        for m in menus
    }
    roots: list[MenuNode] = []
    for m in menus:
        parent = nodes.get(m.parent_id) if m.parent_id is not None else None
        if parent is None or parent is nodes[m.id]:
            roots.append(nodes[m.id])
        else:
            parent.children.append(nodes[m.id])

    def _sort(level: list[MenuNode]) -> None:
        level.sort(key=lambda n: (n.order_index, n.id))
        for n in level:
            _sort(n.children)

    _sort(roots)
    return roots


async def get_user_menus(db: AsyncSession, user_id: int) -> list[MenuNode]:
    permissions = await get_user_permissions(db, user_id)
    if not permissions:
        return []
    result = await db.execute(
        select(Menu)
        .join(menu_permissions, menu_permissions.c.menu_id == Menu.id)
        .join(Permission, Permission.id == menu_permissions.c.permission_id)
        .where(Permission.code.in_(permissions))
        .distinct()
    )
    return build_menu_tree(result.scalars().all())
