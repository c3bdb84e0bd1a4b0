"""
Domain error taxonomy.

Services raise these; the HTTP layer (``app.core.exceptions``) decides which
status code each one becomes. Nothing in here knows about HTTP.
"""

from __future__ import annotations

from collections.abc import Sequence


class NiraError(Exception):
    """Base class for every error the services raise on purpose."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(NiraError):
    default_message = "Authentication required. Please login."

    def __init__(self, message: str | None = None, *, expired: bool = False) -> None:
        super().__init__(message)
        self.expired = expired


class Forbidden(NiraError):
    """Insufficient permission, or a lifecycle guardrail refused the action."""

    default_message = "Insufficient permissions"

    def __init__(
        self,
        message: str | None = None,
        *,
        codes: Sequence[str] = (),
        mode: str | None = None,
    ) -> None:
        self.codes = tuple(codes)
        self.mode = mode
        if message is None and self.codes:
            joiner = " AND " if mode == "ALL" else " OR "
            message = f"Insufficient permissions. Required: {joiner.join(self.codes)}"
        super().__init__(message)


class ValidationError(NiraError):
    default_message = "Invalid input"


class NotFound(NiraError):
    default_message = "Not found"


class Conflict(NiraError):
    default_message = "Resource already exists"


class Internal(NiraError):
    default_message = "Internal server error"
