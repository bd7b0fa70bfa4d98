"""Self-certifying bearer tokens signed with the process-wide secret."""
from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from cryptography.fernet import Fernet, InvalidToken

from .errors import InvalidTokenError
from .models import AuthToken

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_cipher(secret: str) -> Fernet:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    key = base64.urlsafe_b64encode(digest)
    return Fernet(key)


class TokenIssuer:
    """Mint and validate tokens without any server-side session state.

    A token is a Fernet token whose plaintext is the username. Fernet stores
    the issue time alongside the ciphertext and authenticates both with
    HMAC-SHA256, so altering either invalidates the token.
    """

    def __init__(
        self,
        secret: str,
        *,
        lifetime: Optional[timedelta] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        if lifetime is not None and lifetime.total_seconds() <= 0:
            raise ValueError("Token lifetime must be positive")
        self._cipher = _build_cipher(secret)
        self._lifetime = lifetime
        self._clock = clock or _utcnow

    @property
    def lifetime(self) -> Optional[timedelta]:
        return self._lifetime

    def issue(self, username: str) -> AuthToken:
        if not username:
            raise ValueError("Token subject must not be empty")
        now = int(self._clock().timestamp())
        value = self._cipher.encrypt_at_time(username.encode("utf-8"), now)
        return AuthToken(
            subject=username,
            issued_at=datetime.fromtimestamp(now, timezone.utc),
            value=value.decode("ascii"),
        )

    def validate(self, token: str) -> str:
        """Return the username embedded in ``token``.

        Raises :class:`InvalidTokenError` for a bad signature, a malformed
        value or, when a lifetime is configured, an expired token.
        """

        if not isinstance(token, str) or not token:
            raise InvalidTokenError("Token must be a non-empty string")

        try:
            if self._lifetime is None:
                payload = self._cipher.decrypt(token)
            else:
                payload = self._cipher.decrypt_at_time(
                    token,
                    ttl=int(self._lifetime.total_seconds()),
                    current_time=int(self._clock().timestamp()),
                )
            subject = payload.decode("utf-8")
        except (InvalidToken, ValueError) as exc:
            raise InvalidTokenError("Invalid or expired token") from exc

        if not subject:
            raise InvalidTokenError("Token has no subject")
        return subject


__all__ = ["TokenIssuer"]
