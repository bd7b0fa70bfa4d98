"""Persistence of messages threaded to their sender and recipient."""
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List

from .database import Database, current_timestamp, parse_datetime, serialize_datetime
from .errors import NotFoundError
from .models import Message, MessageDetail, UserSummary

# Both participants are resolved in the same statement as the message rows.
_DETAIL_QUERY = """
    SELECT m.id,
           m.from_username,
           m.to_username,
           m.body,
           m.sent_at,
           m.read_at,
           f.first_name AS from_first_name,
           f.last_name AS from_last_name,
           f.phone AS from_phone,
           t.first_name AS to_first_name,
           t.last_name AS to_last_name,
           t.phone AS to_phone
      FROM messages AS m
      JOIN users AS f ON f.username = m.from_username
      JOIN users AS t ON t.username = m.to_username
"""


class MessageStore:
    """Create and read message records."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def create(self, from_username: str, to_username: str, body: str) -> Message:
        """Store a new unread message.

        Raises :class:`NotFoundError` unless both usernames belong to
        registered users; the existence check and the insert run as one
        statement.
        """

        if not body or not body.strip():
            raise ValueError("Message body must not be empty")

        sent_at = current_timestamp()
        with self._database.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO messages (from_username, to_username, body, sent_at)
                SELECT ?, ?, ?, ?
                 WHERE EXISTS (SELECT 1 FROM users WHERE username = ?)
                   AND EXISTS (SELECT 1 FROM users WHERE username = ?)
                """,
                (
                    from_username,
                    to_username,
                    body,
                    serialize_datetime(sent_at),
                    from_username,
                    to_username,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"Cannot send a message from {from_username!r} to {to_username!r}: no such user"
                )
            message_id = cursor.lastrowid

        return Message(
            id=int(message_id),
            from_username=from_username,
            to_username=to_username,
            body=body,
            sent_at=sent_at,
            read_at=None,
        )

    def get(self, message_id: int) -> Message:
        with self._database.connect() as conn:
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"No such message: {message_id}")
        return self._row_to_message(row)

    def get_detail(self, message_id: int) -> MessageDetail:
        with self._database.connect() as conn:
            row = conn.execute(_DETAIL_QUERY + " WHERE m.id = ?", (message_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"No such message: {message_id}")
        return self._row_to_detail(row)

    def list_sent_by(self, username: str) -> List[MessageDetail]:
        with self._database.connect() as conn:
            rows = conn.execute(
                _DETAIL_QUERY + " WHERE m.from_username = ? ORDER BY m.id",
                (username,),
            ).fetchall()
        return [self._row_to_detail(row) for row in rows]

    def list_received_by(self, username: str) -> List[MessageDetail]:
        with self._database.connect() as conn:
            rows = conn.execute(
                _DETAIL_QUERY + " WHERE m.to_username = ? ORDER BY m.id",
                (username,),
            ).fetchall()
        return [self._row_to_detail(row) for row in rows]

    def mark_read(self, message_id: int, read_at: datetime) -> bool:
        """Set ``read_at`` if it is still unset.

        Returns ``True`` only for the call that performed the transition.
        """

        with self._database.connect() as conn:
            cursor = conn.execute(
                "UPDATE messages SET read_at = ? WHERE id = ? AND read_at IS NULL",
                (serialize_datetime(read_at), message_id),
            )
            return cursor.rowcount > 0

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            id=int(row["id"]),
            from_username=str(row["from_username"]),
            to_username=str(row["to_username"]),
            body=str(row["body"]),
            sent_at=parse_datetime(str(row["sent_at"])),
            read_at=parse_datetime(row["read_at"]),
        )

    def _row_to_detail(self, row: sqlite3.Row) -> MessageDetail:
        return MessageDetail(
            message=self._row_to_message(row),
            from_user=UserSummary(
                username=str(row["from_username"]),
                first_name=str(row["from_first_name"]),
                last_name=str(row["from_last_name"]),
                phone=str(row["from_phone"]),
            ),
            to_user=UserSummary(
                username=str(row["to_username"]),
                first_name=str(row["to_first_name"]),
                last_name=str(row["to_last_name"]),
                phone=str(row["to_phone"]),
            ),
        )


__all__ = ["MessageStore"]
