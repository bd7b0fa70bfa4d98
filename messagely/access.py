"""Authorization rules for viewing messages and marking them read.

Viewing is symmetric: sender and recipient may both read a message. Marking
read is asymmetric: only the recipient may move a message from unread to
read, and that transition happens at most once.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from .errors import ForbiddenError
from .messages import MessageStore
from .models import Message, MessageDetail

logger = logging.getLogger("messagely.access")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageAccessControl:
    def __init__(self, messages: MessageStore, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._messages = messages
        self._clock = clock or _utcnow

    def authorize_view(self, message: Union[Message, MessageDetail], username: str) -> None:
        if isinstance(message, MessageDetail):
            message = message.message
        if username not in (message.from_username, message.to_username):
            logger.warning("User %s denied access to message %s", username, message.id)
            raise ForbiddenError("Only the sender or recipient may view this message")

    def view(self, message_id: int, username: str) -> MessageDetail:
        detail = self._messages.get_detail(message_id)
        self.authorize_view(detail, username)
        return detail

    def mark_read(self, message_id: int, username: str) -> Message:
        """Mark a message read on behalf of its recipient.

        Marking an already-read message is a no-op that returns the message
        with its original ``read_at``.
        """

        message = self._messages.get(message_id)
        if username != message.to_username:
            logger.warning("User %s may not mark message %s read", username, message_id)
            raise ForbiddenError("Only the recipient may mark this message read")

        if message.is_read:
            return message

        read_at = max(self._clock(), message.sent_at)
        if self._messages.mark_read(message_id, read_at):
            logger.info("Message %s marked read by %s", message_id, username)
        return self._messages.get(message_id)

    def authorize_profile(self, requested_username: str, username: str) -> None:
        """Allow users to see only their own profile and message lists."""

        if requested_username != username:
            raise ForbiddenError("You may only view your own account")


__all__ = ["MessageAccessControl"]
