"""Lookup and creation of user identity records."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from .database import Database, current_timestamp, parse_datetime, serialize_datetime
from .errors import DuplicateKeyError, NotFoundError
from .models import UserIdentity, UserListing


def _normalize_username(username: str) -> str:
    normalized = username.strip()
    if not normalized:
        raise ValueError("Username must not be empty")
    return normalized


class UserDirectory:
    """Owns the ``users`` table. Holds no authentication logic."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def create(
        self,
        username: str,
        password_hash: str,
        *,
        first_name: str,
        last_name: str,
        phone: str,
    ) -> UserIdentity:
        """Insert a new identity and return it.

        Registration counts as the first sign-in, so ``last_login_at`` starts
        out equal to ``joined_at``.
        """

        normalized = _normalize_username(username)
        if not password_hash:
            raise ValueError("Password hash must not be empty")
        profile = {"first_name": first_name.strip(), "last_name": last_name.strip(), "phone": phone.strip()}
        for field, value in profile.items():
            if not value:
                raise ValueError(f"{field} must not be empty")

        joined_at = current_timestamp()
        identity = UserIdentity(
            username=normalized,
            password_hash=password_hash,
            first_name=profile["first_name"],
            last_name=profile["last_name"],
            phone=profile["phone"],
            joined_at=joined_at,
            last_login_at=joined_at,
        )

        with self._database.connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (
                        username,
                        password_hash,
                        first_name,
                        last_name,
                        phone,
                        joined_at,
                        last_login_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        identity.username,
                        identity.password_hash,
                        identity.first_name,
                        identity.last_name,
                        identity.phone,
                        serialize_datetime(joined_at),
                        serialize_datetime(joined_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateKeyError(f"Username {normalized!r} is already taken") from exc

        return identity

    def find_by_username(self, username: str) -> Optional[UserIdentity]:
        with self._database.connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ?",
                (username.strip(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_identity(row)

    def get(self, username: str) -> UserIdentity:
        identity = self.find_by_username(username)
        if identity is None:
            raise NotFoundError(f"No such user: {username}")
        return identity

    def touch_last_login(self, username: str) -> datetime:
        """Record a successful sign-in and return the new timestamp."""

        now = current_timestamp()
        with self._database.connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET last_login_at = ? WHERE username = ?",
                (serialize_datetime(now), username.strip()),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"No such user: {username}")
        return now

    def update_password_hash(self, username: str, password_hash: str) -> None:
        if not password_hash:
            raise ValueError("Password hash must not be empty")
        with self._database.connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET password_hash = ? WHERE username = ?",
                (password_hash, username.strip()),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"No such user: {username}")

    def list_all(self) -> List[UserListing]:
        with self._database.connect() as conn:
            rows = conn.execute(
                "SELECT username, first_name, last_name FROM users ORDER BY username"
            ).fetchall()
        return [
            UserListing(
                username=str(row["username"]),
                first_name=str(row["first_name"]),
                last_name=str(row["last_name"]),
            )
            for row in rows
        ]

    def _row_to_identity(self, row: sqlite3.Row) -> UserIdentity:
        return UserIdentity(
            username=str(row["username"]),
            password_hash=str(row["password_hash"]),
            first_name=str(row["first_name"]),
            last_name=str(row["last_name"]),
            phone=str(row["phone"]),
            joined_at=parse_datetime(str(row["joined_at"])),
            last_login_at=parse_datetime(row["last_login_at"]),
        )


__all__ = ["UserDirectory"]
