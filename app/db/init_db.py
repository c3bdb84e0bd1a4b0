"""
Startup database tasks — schema check and idempotent seeding.

Seeding only adds what is missing (matched by role name, permission code,
menu route and username), so it is safe to run on every start.
"""

from __future__ import annotations

import logging

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.models.rbac import ADMIN_ROLE, Menu, Permission, Role, menu_permissions, role_permissions
from app.models.user import User

logger = logging.getLogger(__name__)

ROLES = {
    ADMIN_ROLE: "Full system access",
    "OFFICER": "Can register and maintain citizens",
    "VIEWER": "Read-only access",
}

PERMISSIONS = {
    "VIEW_DASHBOARD": "View dashboard",
    "CREATE_CITIZEN": "Create new citizen records",
    "VIEW_CITIZEN": "View citizen records",
    "UPDATE_CITIZEN": "Update citizen records",
    "DELETE_CITIZEN": "Move citizen records to trash and purge them",
    "RESTORE_CITIZEN": "Restore citizen records from trash",
    "UPDATE_CITIZEN_STATUS": "Mark citizens active or deceased",
    "VIEW_REPORTS": "View reports",
    "MANAGE_USERS": "Manage system users",
    "MANAGE_ROLES": "Manage roles and permissions",
    "MANAGE_NOTICES": "Post and remove system notices",
    "VIEW_NOTICES": "Read system notices",
    "VIEW_ACTIVITIES": "Read the activity log",
}

ROLE_PERMISSIONS = {
    ADMIN_ROLE: tuple(PERMISSIONS),
    "OFFICER": (
        "VIEW_DASHBOARD",
        "CREATE_CITIZEN",
        "VIEW_CITIZEN",
        "UPDATE_CITIZEN",
        "DELETE_CITIZEN",
        "RESTORE_CITIZEN",
        "VIEW_NOTICES",
    ),
    "VIEWER": ("VIEW_DASHBOARD", "VIEW_CITIZEN", "VIEW_REPORTS", "VIEW_NOTICES"),
}

# (label, route, icon, order_index, parent route, permission codes)
MENUS = (
    ("Dashboard", "/dashboard", "home", 1, None, ("VIEW_DASHBOARD",)),
    ("Citizens", "/citizens", "users", 2, None, ("VIEW_CITIZEN",)),
    ("Add Citizen", "/citizens/create", "user-plus", 1, "/citizens", ("CREATE_CITIZEN",)),
    ("Citizens Trash", "/citizens/trash", "trash", 2, "/citizens", ("DELETE_CITIZEN", "RESTORE_CITIZEN")),
    ("Reports", "/reports", "bar-chart", 3, None, ("VIEW_REPORTS",)),
    ("User Management", "/users", "settings", 4, None, ("MANAGE_USERS",)),
    ("Users Trash", "/users/trash", "trash", 1, "/users", ("MANAGE_USERS",)),
    ("Notices", "/notices", "bell", 5, None, ("VIEW_NOTICES", "MANAGE_NOTICES")),
    ("Activity Log", "/activities", "activity", 6, None, ("VIEW_ACTIVITIES",)),
)


# ── Schema check ────────────────────────────────────────────────────
def _missing_schema(sync_conn) -> list[str]:
    inspector = inspect(sync_conn)
    existing = set(inspector.get_table_names())
    missing: list[str] = []
    for table in Base.metadata.sorted_tables:
        if table.name not in existing:
            missing.append(table.name)
            continue
        columns = {c["name"] for c in inspector.get_columns(table.name)}
        missing.extend(f"{table.name}.{c.name}" for c in table.columns if c.name not in columns)
    return missing


async def verify_schema(conn: AsyncConnection) -> None:
    """Abort startup if any mapped table or column is absent from the database."""
    missing = await conn.run_sync(_missing_schema)
    if missing:
        logger.error("Database schema is incomplete, missing: %s", ", ".join(missing))
        raise RuntimeError(f"Database schema is missing: {', '.join(missing)}")
    logger.info("Database schema verified")


# ── Seeding ─────────────────────────────────────────────────────────
async def _get_or_create(db: AsyncSession, model, lookup: dict, **values):
    result = await db.execute(select(model).filter_by(**lookup))
    row = result.scalar_one_or_none()
    if row is None:
        row = model(**lookup, **values)
        db.add(row)
        await db.flush()
    return row


async def seed_rbac(db: AsyncSession) -> None:
    roles = {
        name: await _get_or_create(db, Role, {"name": name}, description=desc)
        for name, desc in ROLES.items()
    }
    perms = {
        code: await _get_or_create(db, Permission, {"code": code}, description=desc)
        for code, desc in PERMISSIONS.items()
    }

    existing = {tuple(r) for r in (await db.execute(select(role_permissions))).all()}
    for role_name, codes in ROLE_PERMISSIONS.items():
        for code in codes:
            pair = (roles[role_name].id, perms[code].id)
            if pair not in existing:
                await db.execute(
                    role_permissions.insert().values(role_id=pair[0], permission_id=pair[1])
                )

    menus: dict[str, Menu] = {}
    for label, route, icon, order_index, parent_route, _codes in MENUS:
        parent = menus.get(parent_route) if parent_route else None
        menus[route] = await _get_or_create(
            db,
            Menu,
            {"route": route},
            label=label,
            icon=icon,
            order_index=order_index,
            parent_id=parent.id if parent else None,
        )

    existing = {tuple(r) for r in (await db.execute(select(menu_permissions))).all()}
    for _label, route, _icon, _order, _parent, codes in MENUS:
        for code in codes:
            pair = (menus[route].id, perms[code].id)
            if pair not in existing:
                await db.execute(
                    menu_permissions.insert().values(menu_id=pair[0], permission_id=pair[1])
                )
    await db.commit()
    logger.info("RBAC data seeded (%d roles, %d permissions, %d menus)", len(roles), len(perms), len(menus))


async def seed_users(db: AsyncSession) -> None:
    accounts = [(settings.FIRST_ADMIN_USERNAME, settings.FIRST_ADMIN_PASSWORD, ADMIN_ROLE)]
    if settings.SEED_DEMO_USERS:
        accounts += [
            ("officer1", settings.FIRST_ADMIN_PASSWORD, "OFFICER"),
            ("viewer1", settings.FIRST_ADMIN_PASSWORD, "VIEWER"),
        ]

    for username, password, role_name in accounts:
        result = await db.execute(
            select(User.id).where(User.username == username, User.deleted_at.is_(None))
        )
        if result.first() is not None:
            continue
        role = (await db.execute(select(Role).where(Role.name == role_name))).scalar_one()
        db.add(
            User(
                username=username,
                password_hash=get_password_hash(password),
                role_id=role.id,
                status="ACTIVE",
            )
        )
        logger.info("Default user created: %s (%s, password: <redacted>)", username, role_name)
    await db.commit()


async def init_db(db: AsyncSession) -> None:
    await seed_rbac(db)
    await seed_users(db)
