"""Domain records for users, messages and bearer tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class UserIdentity:
    """A registered account as stored in the database."""

    username: str
    password_hash: str
    first_name: str
    last_name: str
    phone: str
    joined_at: datetime
    last_login_at: Optional[datetime]


@dataclass(frozen=True)
class UserSummary:
    """Public details of a message participant."""

    username: str
    first_name: str
    last_name: str
    phone: str


@dataclass(frozen=True)
class UserListing:
    username: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Message:
    """A private message between two users."""

    id: int
    from_username: str
    to_username: str
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


@dataclass(frozen=True)
class MessageDetail:
    """A message joined with the summaries of both participants."""

    message: Message
    from_user: UserSummary
    to_user: UserSummary


@dataclass(frozen=True)
class AuthToken:
    """A signed, self-contained proof of identity.

    ``value`` is the opaque string handed to clients; it embeds the subject,
    the issue time and the signature over both.
    """

    subject: str
    issued_at: datetime
    value: str


__all__ = [
    "AuthToken",
    "Message",
    "MessageDetail",
    "UserIdentity",
    "UserListing",
    "UserSummary",
]
