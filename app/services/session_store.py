"""
Server-side sessions keyed by an opaque, browser-scoped id.

The storage backend is pluggable (``SessionStore``); ``SessionManager`` owns
the lifecycle rules: regenerate on login, sliding inactivity timeout checked
*before* the refresh, destroy on logout or expiry.
"""

from __future__ import annotations

import enum
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.core.security import new_session_id

logger = logging.getLogger(__name__)


class SessionStatus(enum.Enum):
    ANONYMOUS = "anonymous"
    EXPIRED = "expired"


ANONYMOUS = SessionStatus.ANONYMOUS
EXPIRED = SessionStatus.EXPIRED


@dataclass(frozen=True)
class Session:
    session_id: str
    user_id: int
    username: str
    role: str | None
    last_activity: float
    created_at: float
    remember_me: bool = False


# ── Storage backends ────────────────────────────────────────────────
class SessionStore(ABC):
    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def set(self, session_id: str, data: dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete(self, session_id: str) -> None: ...

    @abstractmethod
    async def delete_idle(self, idle_before: float) -> int:
        """Drop every session last active before ``idle_before``; return how many."""


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions do not survive a restart."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    async def get(self, session_id: str) -> dict[str, Any] | None:
        data = self._data.get(session_id)
        return dict(data) if data is not None else None

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        self._data[session_id] = dict(data)

    async def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    async def delete_idle(self, idle_before: float) -> int:
        stale = [
            sid for sid, data in self._data.items()
            if float(data.get("last_activity", 0)) < idle_before
        ]
        for sid in stale:
            del self._data[sid]
        return len(stale)

    def __len__(self) -> int:
        return len(self._data)


# ── Lifecycle ───────────────────────────────────────────────────────
class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        timeout_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    async def create_session(
        self,
        user_id: int,
        username: str,
        role: str | None,
        remember_me: bool = False,
        previous_session_id: str | None = None,
    ) -> Session:
        """Start a fresh session, dropping whatever id the browser came with."""
        if previous_session_id:
            await self.store.delete(previous_session_id)

        now = self.clock()
        # Abandoned sessions are only ever noticed here or on their own next request
        dropped = await self.store.delete_idle(now - self.timeout_seconds)
        if dropped:
            logger.info("Dropped %d idle session(s)", dropped)

        session_id = new_session_id()
        data = {
            "user_id": user_id,
            "username": username,
            "role": role,
            "created_at": now,
            "last_activity": now,
            "remember_me": remember_me,
        }
        await self.store.set(session_id, data)
        return _to_session(session_id, data)

    async def validate(self, session_id: str | None) -> Session | SessionStatus:
        """Resolve a session id to a live session, refreshing its activity stamp.

        Never raises for a missing or stale session; callers get ``ANONYMOUS``
        or ``EXPIRED`` instead.
        """
        if not session_id:
            return ANONYMOUS
        data = await self.store.get(session_id)
        if not data or not data.get("user_id"):
            return ANONYMOUS

        now = self.clock()
        # Compare against the stored stamp before overwriting it
        idle = now - float(data.get("last_activity", 0))
        if idle > self.timeout_seconds:
            await self.store.delete(session_id)
            logger.info(
                "Session expired for user %s after %.0fs idle", data.get("username"), idle
            )
            return EXPIRED

        data["last_activity"] = now
        await self.store.set(session_id, data)
        return _to_session(session_id, data)

    async def destroy(self, session_id: str | None) -> None:
        if session_id:
            await self.store.delete(session_id)

    def expires_at(self, session: Session) -> int:
        return int(session.last_activity + self.timeout_seconds)


def _to_session(session_id: str, data: dict[str, Any]) -> Session:
    return Session(
        session_id=session_id,
        user_id=int(data["user_id"]),
        username=str(data.get("username", "")),
        role=data.get("role"),
        last_activity=float(data["last_activity"]),
        created_at=float(data.get("created_at", data["last_activity"])),
        remember_me=bool(data.get("remember_me", False)),
    )
