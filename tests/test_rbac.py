"""Tests for live permission resolution, the authorization gate and menu trees."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1 import deps
from app.core.errors import Forbidden, Unauthenticated
from app.models.rbac import Menu, Permission, Role, role_permissions
from app.models.user import User
from app.services import authorization as authz
from app.services.rbac import (build_menu_tree, get_user_menus, get_user_permissions,
                               get_user_role, has_permission)
from app.services.session_store import ANONYMOUS, EXPIRED, Session


async def _user(db: AsyncSession, username: str) -> User:
    return (await db.execute(select(User).where(User.username == username))).scalar_one()


async def _role(db: AsyncSession, name: str) -> Role:
    return (await db.execute(select(Role).where(Role.name == name))).scalar_one()


def _session(user: User) -> Session:
    return Session(
        session_id="sid",
        user_id=user.id,
        username=user.username,
        role=None,
        last_activity=0.0,
        created_at=0.0,
    )


# ── Permission resolution ───────────────────────────────────────────
@pytest.mark.asyncio
async def test_seeded_role_permissions(db_session: AsyncSession):
    admin = await _user(db_session, "admin")
    viewer = await _user(db_session, "viewer1")

    admin_perms = await get_user_permissions(db_session, admin.id)
    assert {"MANAGE_USERS", "UPDATE_CITIZEN_STATUS", "VIEW_ACTIVITIES"} <= admin_perms
    assert await get_user_permissions(db_session, viewer.id) == {
        "VIEW_DASHBOARD",
        "VIEW_CITIZEN",
        "VIEW_REPORTS",
        "VIEW_NOTICES",
    }
    assert await has_permission(db_session, viewer.id, "VIEW_CITIZEN")
    assert not await has_permission(db_session, viewer.id, "CREATE_CITIZEN")


@pytest.mark.asyncio
async def test_inactive_user_resolves_to_nothing(db_session: AsyncSession):
    officer = await _user(db_session, "officer1")
    officer.status = "DISABLED"
    await db_session.commit()

    assert await get_user_permissions(db_session, officer.id) == set()
    assert await get_user_role(db_session, officer.id) is None
    assert await get_user_menus(db_session, officer.id) == []


@pytest.mark.asyncio
async def test_user_without_role_has_no_role(db_session: AsyncSession):
    officer = await _user(db_session, "officer1")
    officer.role_id = None
    await db_session.commit()
    assert await get_user_role(db_session, officer.id) is None
    assert await get_user_permissions(db_session, officer.id) == set()


@pytest.mark.asyncio
async def test_unknown_user_has_no_permissions(db_session: AsyncSession):
    assert await get_user_permissions(db_session, 9999) == set()


@pytest.mark.asyncio
async def test_role_change_applies_to_existing_session(
    officer_client: AsyncClient, admin_client: AsyncClient, db_session: AsyncSession
):
    """Permissions are re-read from the database on every request."""
    payload = {
        "firstName": "Ayaan",
        "lastName": "Farah",
        "gender": "FEMALE",
        "dateOfBirth": "1991-03-04",
        "placeOfBirth": "Kismayo",
    }
    assert (await officer_client.post("/api/v1/citizens/create", json=payload)).status_code == 201

    officer = await _user(db_session, "officer1")
    viewer_role = await _role(db_session, "VIEWER")
    resp = await admin_client.post(
        "/api/v1/users/update", json={"id": officer.id, "roleId": viewer_role.id}
    )
    assert resp.status_code == 200

    resp = await officer_client.post("/api/v1/citizens/create", json=payload)
    assert resp.status_code == 403
    assert "CREATE_CITIZEN" in resp.json()["message"]
    # VIEWER can still read
    assert (await officer_client.get("/api/v1/citizens/search")).status_code == 200


@pytest.mark.asyncio
async def test_permission_revoked_from_role_applies_immediately(
    viewer_client: AsyncClient, db_session: AsyncSession
):
    assert (await viewer_client.get("/api/v1/citizens/search")).status_code == 200

    viewer_role = await _role(db_session, "VIEWER")
    perm = (
        await db_session.execute(select(Permission).where(Permission.code == "VIEW_CITIZEN"))
    ).scalar_one()
    await db_session.execute(
        role_permissions.delete().where(
            role_permissions.c.role_id == viewer_role.id,
            role_permissions.c.permission_id == perm.id,
        )
    )
    await db_session.commit()

    assert (await viewer_client.get("/api/v1/citizens/search")).status_code == 403


# ── Authorization gate ──────────────────────────────────────────────
@pytest.mark.asyncio
async def test_gate_rejects_anonymous_and_expired(db_session: AsyncSession):
    with pytest.raises(Unauthenticated) as exc:
        await authz.require_permission(db_session, ANONYMOUS, "VIEW_CITIZEN")
    assert exc.value.expired is False

    with pytest.raises(Unauthenticated) as exc:
        await authz.require_permission(db_session, EXPIRED, "VIEW_CITIZEN")
    assert exc.value.expired is True


@pytest.mark.asyncio
async def test_gate_single_permission(db_session: AsyncSession):
    viewer = _session(await _user(db_session, "viewer1"))
    assert await authz.require_permission(db_session, viewer, "VIEW_CITIZEN") is viewer

    with pytest.raises(Forbidden) as exc:
        await authz.require_permission(db_session, viewer, "CREATE_CITIZEN")
    assert exc.value.codes == ("CREATE_CITIZEN",)
    assert exc.value.message == "Insufficient permissions. Required: CREATE_CITIZEN"


@pytest.mark.asyncio
async def test_gate_any_permission(db_session: AsyncSession):
    viewer = _session(await _user(db_session, "viewer1"))
    await authz.require_any_permission(db_session, viewer, ["MANAGE_USERS", "VIEW_REPORTS"])

    with pytest.raises(Forbidden) as exc:
        await authz.require_any_permission(db_session, viewer, ["MANAGE_USERS", "MANAGE_ROLES"])
    assert exc.value.mode == "ANY"
    assert exc.value.message.endswith("MANAGE_USERS OR MANAGE_ROLES")


@pytest.mark.asyncio
async def test_gate_all_permissions_names_only_requested_codes(db_session: AsyncSession):
    viewer = _session(await _user(db_session, "viewer1"))
    await authz.require_all_permissions(db_session, viewer, ["VIEW_CITIZEN", "VIEW_REPORTS"])

    with pytest.raises(Forbidden) as exc:
        await authz.require_all_permissions(db_session, viewer, ["VIEW_CITIZEN", "MANAGE_USERS"])
    assert exc.value.mode == "ALL"
    assert exc.value.message == "Insufficient permissions. Required: VIEW_CITIZEN AND MANAGE_USERS"


@pytest.mark.asyncio
async def test_endpoint_forbidden_names_required_code(viewer_client: AsyncClient):
    resp = await viewer_client.get("/api/v1/users/list")
    assert resp.status_code == 403
    assert resp.json() == {
        "success": False,
        "message": "Insufficient permissions. Required: MANAGE_USERS",
    }


@pytest.mark.asyncio
async def test_endpoint_without_session_is_401(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/citizens/create", json={})
    assert resp.status_code == 401


# ── Menus ───────────────────────────────────────────────────────────
def _menu(id, label, order_index, parent_id=None):
    return Menu(id=id, label=label, route=f"/{label.lower()}", icon=None,
                order_index=order_index, parent_id=parent_id)


def test_build_menu_tree_sorts_every_level():
    menus = [
        _menu(5, "Reports", 3),
        _menu(2, "Citizens", 2),
        _menu(4, "Trash", 2, parent_id=2),
        _menu(3, "Add", 1, parent_id=2),
        _menu(1, "Dashboard", 1),
        _menu(6, "Zeta", 3),
    ]
    tree = build_menu_tree(menus)

    assert [n.label for n in tree] == ["Dashboard", "Citizens", "Reports", "Zeta"]
    assert [c.label for c in tree[1].children] == ["Add", "Trash"]
    assert tree[0].children == []


def test_build_menu_tree_promotes_orphans_to_root():
    tree = build_menu_tree([_menu(3, "Add", 1, parent_id=2), _menu(1, "Dashboard", 2)])
    assert [n.label for n in tree] == ["Add", "Dashboard"]


def test_menu_node_to_dict():
    node = build_menu_tree([_menu(1, "Dashboard", 1)])[0]
    assert node.to_dict() == {
        "id": 1,
        "label": "Dashboard",
        "route": "/dashboard",
        "icon": None,
        "orderIndex": 1,
        "children": [],
    }


@pytest.mark.asyncio
async def test_dashboard_only_user_sees_only_dashboard(db_session: AsyncSession):
    role = Role(name="DASH_ONLY", description="dashboard only")
    db_session.add(role)
    await db_session.flush()
    perm = (
        await db_session.execute(select(Permission).where(Permission.code == "VIEW_DASHBOARD"))
    ).scalar_one()
    await db_session.execute(role_permissions.insert().values(role_id=role.id, permission_id=perm.id))
    user = User(username="dash", password_hash="x", role_id=role.id, status="ACTIVE")
    db_session.add(user)
    await db_session.commit()

    tree = await get_user_menus(db_session, user.id)
    assert [n.to_dict() for n in tree] == [
        {
            "id": tree[0].id,
            "label": "Dashboard",
            "route": "/dashboard",
            "icon": "home",
            "orderIndex": 1,
            "children": [],
        }
    ]


@pytest.mark.asyncio
async def test_officer_menus_nest_children(db_session: AsyncSession):
    officer = await _user(db_session, "officer1")
    tree = await get_user_menus(db_session, officer.id)

    assert [n.label for n in tree] == ["Dashboard", "Citizens", "Notices"]
    assert [c.label for c in tree[1].children] == ["Add Citizen", "Citizens Trash"]


@pytest.mark.asyncio
async def test_viewer_menus_hide_unmapped_children(db_session: AsyncSession):
    viewer = await _user(db_session, "viewer1")
    tree = await get_user_menus(db_session, viewer.id)

    assert [n.label for n in tree] == ["Dashboard", "Citizens", "Reports", "Notices"]
    assert tree[1].children == []


# ── Dependency factories ────────────────────────────────────────────
@pytest.mark.asyncio
async def test_dependency_factories_wrap_the_gate(db_session: AsyncSession):
    viewer = _session(await _user(db_session, "viewer1"))

    any_guard = deps.require_any_permission("MANAGE_USERS", "VIEW_CITIZEN")
    assert await any_guard(state=viewer, db=db_session) is viewer

    all_guard = deps.require_all_permissions("VIEW_CITIZEN", "MANAGE_USERS")
    with pytest.raises(Forbidden) as exc:
        await all_guard(state=viewer, db=db_session)
    assert exc.value.mode == "ALL"

    with pytest.raises(Unauthenticated):
        await deps.require_permission("VIEW_CITIZEN")(state=EXPIRED, db=db_session)
