"""
Password hashing (bcrypt) and session-cookie signing (HS256 JWS).
"""

from __future__ import annotations

import secrets

from jose import jws
from jose.exceptions import JOSEError
from passlib.context import CryptContext
from starlette.responses import Response

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

_ALGORITHM = "HS256"


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # Malformed or foreign hash in the database
        return False


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── Session ids ─────────────────────────────────────────────────────
def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session_id(session_id: str, secret: str | None = None) -> str:
    """Wrap an opaque session id in a compact JWS for the cookie value."""
    return jws.sign(session_id.encode("utf-8"), secret or settings.SECRET_KEY, algorithm=_ALGORITHM)


def unsign_session_id(cookie_value: str | None, secret: str | None = None) -> str | None:
    """Return the session id if the cookie signature is valid, else ``None``."""
    if not cookie_value:
        return None
    try:
        payload = jws.verify(cookie_value, secret or settings.SECRET_KEY, algorithms=[_ALGORITHM])
    except JOSEError:
        return None
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return None


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie in the browser."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path=settings.SESSION_COOKIE_PATH,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
