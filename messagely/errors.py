"""Error kinds raised by the messaging core."""
from __future__ import annotations


class MessagelyError(Exception):
    """Base class for declined operations."""


class DuplicateKeyError(MessagelyError):
    """Raised when registering a username that is already taken."""


class NotFoundError(MessagelyError):
    """Raised when a referenced user or message does not exist."""


class UnauthorizedError(MessagelyError):
    """Raised when credentials or a bearer token cannot be accepted.

    The message is deliberately vague so callers cannot tell an unknown
    account apart from a wrong password.
    """


class ForbiddenError(MessagelyError):
    """Raised when an authenticated user lacks permission for an action."""


class InvalidTokenError(MessagelyError):
    """Raised by the token issuer for a tampered, malformed or expired token."""


__all__ = [
    "DuplicateKeyError",
    "ForbiddenError",
    "InvalidTokenError",
    "MessagelyError",
    "NotFoundError",
    "UnauthorizedError",
]
