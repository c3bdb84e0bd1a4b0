"""
Back-office user accounts.

Disabling, deleting or demoting a user holding the ADMIN role goes through
``_guard_last_admin``. The guard locks every live ADMIN row in id order and
counts the others inside the same transaction as the mutation, and the
statement that removes the admin repeats the count in its WHERE clause, so
two concurrent requests cannot both remove "the other" admin.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from app.core.security import get_password_hash, verify_password
from app.db.session import atomic
from app.models.rbac import ADMIN_ROLE, Role
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.services.activity_service import log_activity
from app.services.soft_delete import SoftDeleteLifecycle, TrashDescriptor, clamp_page

logger = logging.getLogger(__name__)

user_trash = SoftDeleteLifecycle(
    TrashDescriptor(
        User,
        key="id",
        label="User",
        status_attr="status",
        trashed_status="DELETED",
        restored_status="ACTIVE",
    )
)


# ── Helpers ─────────────────────────────────────────────────────────
async def _live_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(
        select(User)
        .where(User.id == user_id, User.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _role(db: AsyncSession, role_id: int) -> Role | None:
    result = await db.execute(select(Role).where(Role.id == role_id))
    return result.scalar_one_or_none()


async def _username_taken(db: AsyncSession, username: str, exclude_id: int | None = None) -> bool:
    stmt = select(User.id).where(User.username == username, User.deleted_at.is_(None))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


def _is_admin(user: User) -> bool:
    return user.role is not None and user.role.name == ADMIN_ROLE


def _other_active_admin(target_id: int) -> Any:
    """EXISTS clause: some live, ACTIVE admin other than ``target_id``."""
    other = aliased(User)
    return (
        select(other.id)
        .join(Role, other.role_id == Role.id)
        .where(
            Role.name == ADMIN_ROLE,
            other.status == "ACTIVE",
            other.deleted_at.is_(None),
            other.id != target_id,
        )
        .exists()
    )


def _last_admin_refused(target: User, action: str) -> Forbidden:
    logger.warning("Refused to %s user %s: last active admin", action, target.id)
    return Forbidden(f"Cannot {action} the last active admin user")


async def _guard_last_admin(db: AsyncSession, target: User, action: str) -> tuple[Any, ...]:
    """Refuse when ``target`` is an ADMIN and no other active admin would remain.

    Must be called inside ``atomic(db)``; the row locks last until its commit.
    Returns extra WHERE criteria for the statement that removes the admin, so
    the count is taken again at write time on backends that ignore row locks.
    """
    if not _is_admin(target):
        return ()
    result = await db.execute(
        select(User.id)
        .join(Role, User.role_id == Role.id)
        .where(
            Role.name == ADMIN_ROLE,
            User.status == "ACTIVE",
            User.deleted_at.is_(None),
        )
        .order_by(User.id)
        .with_for_update(of=User)
    )
    others = [uid for uid in result.scalars().all() if uid != target.id]
    if not others:
        raise _last_admin_refused(target, action)
    return (_other_active_admin(target.id),)


async def _reload(db: AsyncSession, user_id: int) -> User:
    user = await _live_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


# ── Authentication ──────────────────────────────────────────────────
async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    result = await db.execute(
        select(User).where(User.username == username, User.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for username=%s", username)
        raise Unauthenticated("Invalid username or password")
    if user.status != "ACTIVE":
        logger.warning("Login refused for %s user %s", user.status.lower(), username)
        raise Forbidden("Account is disabled. Contact an administrator.")
    return user


# ── CRUD ────────────────────────────────────────────────────────────
async def create_user(db: AsyncSession, data: UserCreate, performed_by: int | None) -> User:
    if await _role(db, data.role_id) is None:
        raise ValidationError("Invalid role ID")
    if await _username_taken(db, data.username):
        raise Conflict("Username already exists")
    try:
        async with atomic(db):
            user = User(
                username=data.username,
                password_hash=get_password_hash(data.password),
                role_id=data.role_id,
                status="ACTIVE",
                phone_number=data.phone_number,
            )
            db.add(user)
            await db.flush()
            await log_activity(
                db, "CREATE_USER", "user", user.id,
                f"Created user {user.username}", performed_by,
            )
    except IntegrityError as exc:
        raise Conflict("Username already exists") from exc
    logger.info("User %s (%s) created by %s", user.id, user.username, performed_by)
    return await _reload(db, user.id)


async def list_users(db: AsyncSession, limit: int = 50, offset: int = 0) -> list[User]:
    limit, offset = clamp_page(limit, offset)
    result = await db.execute(
        select(User)
        .where(User.deleted_at.is_(None))
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: int) -> User:
    return await _reload(db, user_id)


async def update_user(db: AsyncSession, data: UserUpdate, performed_by: int | None) -> User:
    changes = data.model_dump(exclude_unset=True, exclude={"id"})
    if not changes:
        raise ValidationError("No fields to update")
    if "username" in changes and changes["username"] is None:
        raise ValidationError("username cannot be empty")
    if "role_id" in changes:
        if changes["role_id"] is None or await _role(db, changes["role_id"]) is None:
            raise ValidationError("Invalid role ID")

    try:
        async with atomic(db):
            user = await _reload(db, data.id)
            if "username" in changes and await _username_taken(db, changes["username"], user.id):
                raise Conflict("Username already exists")
            new_role = changes.get("role_id")
            if new_role is not None and new_role != user.role_id:
                new_role_row = await _role(db, new_role)
                if new_role_row is not None and new_role_row.name != ADMIN_ROLE:
                    guard = await _guard_last_admin(db, user, "demote")
                    if guard:
                        result = await db.execute(
                            update(User)
                            .where(User.id == user.id, *guard)
                            .values(role_id=new_role)
                            .execution_options(synchronize_session="fetch")
                        )
                        if result.rowcount == 0:
                            raise _last_admin_refused(user, "demote")
            for field, value in changes.items():
                setattr(user, field, value)
            await db.flush()
            await log_activity(
                db, "UPDATE_USER", "user", user.id,
                f"Updated user {user.username}: {', '.join(sorted(changes))}", performed_by,
            )
    except IntegrityError as exc:
        raise Conflict("Username already exists") from exc
    return await _reload(db, data.id)


async def change_user_status(
    db: AsyncSession, user_id: int, new_status: str, acting_user_id: int
) -> User:
    if new_status == "DISABLED" and user_id == acting_user_id:
        raise Forbidden("Cannot disable your own account")
    async with atomic(db):
        user = await _reload(db, user_id)
        if user.status == new_status:
            return user
        guard: tuple[Any, ...] = ()
        if new_status == "DISABLED":
            guard = await _guard_last_admin(db, user, "disable")
        old_status = user.status
        result = await db.execute(
            update(User)
            .where(User.id == user.id, User.deleted_at.is_(None), *guard)
            .values(status=new_status)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            if guard:
                raise _last_admin_refused(user, "disable")
            raise NotFound("User not found")
        await log_activity(
            db, "UPDATE_USER_STATUS", "user", user.id,
            f"User {user.username} status changed from {old_status} to {new_status}",
            acting_user_id,
        )
    logger.info("User %s status %s -> %s by %s", user_id, old_status, new_status, acting_user_id)
    return await _reload(db, user_id)


async def reset_password(
    db: AsyncSession, user_id: int, password: str, performed_by: int | None
) -> None:
    async with atomic(db):
        user = await _reload(db, user_id)
        user.password_hash = get_password_hash(password)
        await db.flush()
        await log_activity(
            db, "RESET_PASSWORD", "user", user.id,
            f"Password reset for user {user.username}", performed_by,
        )
    logger.info("Password reset for user %s by %s", user_id, performed_by)


# ── Trash ───────────────────────────────────────────────────────────
async def delete_user(db: AsyncSession, user_id: int, acting_user_id: int) -> None:
    if user_id == acting_user_id:
        raise Forbidden("Cannot delete your own account")
    async with atomic(db):
        user = await _live_user(db, user_id)
        if user is None:
            raise NotFound("User not found or already deleted")
        guard = await _guard_last_admin(db, user, "delete")
        try:
            await user_trash.soft_delete(db, user_id, *guard)
        except NotFound:
            if guard:
                raise _last_admin_refused(user, "delete") from None
            raise
        await log_activity(
            db, "DELETE_USER", "user", user_id,
            f"Moved user {user.username} to trash", acting_user_id,
        )


async def list_deleted_users(db: AsyncSession, limit: int = 50, offset: int = 0) -> list[User]:
    return await user_trash.list_trash(db, limit, offset)


async def restore_user(db: AsyncSession, user_id: int, performed_by: int | None) -> None:
    async with atomic(db):
        await user_trash.restore(db, user_id)
        await log_activity(
            db, "RESTORE_USER", "user", user_id,
            f"Restored user {user_id} from trash", performed_by,
        )


async def restore_all_users(db: AsyncSession, performed_by: int | None) -> int:
    async with atomic(db):
        count = await user_trash.restore_all(db)
        if count:
            await log_activity(
                db, "RESTORE_ALL_USERS", "user", None,
                f"Restored {count} user(s) from trash", performed_by,
            )
    return count


async def purge_user(db: AsyncSession, user_id: int, performed_by: int | None) -> None:
    async with atomic(db):
        await user_trash.purge(db, user_id)
        await log_activity(
            db, "PURGE_USER", "user", user_id,
            f"Permanently deleted user {user_id}", performed_by,
        )


async def purge_all_users(db: AsyncSession, performed_by: int | None) -> int:
    async with atomic(db):
        count = await user_trash.purge_all(db)
        if count:
            await log_activity(
                db, "PURGE_ALL_USERS", "user", None,
                f"Permanently deleted {count} user(s) from trash", performed_by,
            )
    return count
