"""Registration, login and bearer-token authentication."""
from __future__ import annotations

import logging

from .errors import InvalidTokenError, UnauthorizedError
from .models import AuthToken, UserIdentity
from .passwords import CredentialHasher
from .tokens import TokenIssuer
from .users import UserDirectory

logger = logging.getLogger("messagely.auth")

_LOGIN_FAILED = "Invalid username/password"


class AuthenticationService:
    """Turn credentials into tokens and tokens back into usernames."""

    def __init__(self, users: UserDirectory, hasher: CredentialHasher, tokens: TokenIssuer) -> None:
        self._users = users
        self._hasher = hasher
        self._tokens = tokens

    def register(
        self,
        username: str,
        password: str,
        *,
        first_name: str,
        last_name: str,
        phone: str,
    ) -> UserIdentity:
        password_hash = self._hasher.hash(password)
        identity = self._users.create(
            username,
            password_hash,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        logger.info("Registered user %s", identity.username)
        return identity

    def login(self, username: str, password: str) -> AuthToken:
        """Verify a username/password pair and issue a token.

        An unknown username and a wrong password fail identically.
        """

        identity = self._users.find_by_username(username)
        if identity is None:
            self._hasher.dummy_verify()
            logger.warning("Rejected login attempt")
            raise UnauthorizedError(_LOGIN_FAILED)

        if not self._hasher.verify(password, identity.password_hash):
            logger.warning("Rejected login attempt")
            raise UnauthorizedError(_LOGIN_FAILED)

        if self._hasher.needs_rehash(identity.password_hash):
            self._users.update_password_hash(identity.username, self._hasher.hash(password))
            logger.info("Upgraded password hash for user %s", identity.username)

        token = self.issue_token(identity.username)
        logger.info("User %s logged in", identity.username)
        return token

    def issue_token(self, username: str) -> AuthToken:
        """Record a sign-in for ``username`` and mint its token."""

        self._users.touch_last_login(username)
        return self._tokens.issue(username)

    def authenticate(self, token: str) -> str:
        try:
            return self._tokens.validate(token)
        except InvalidTokenError as exc:
            raise UnauthorizedError("Invalid or expired token") from exc


__all__ = ["AuthenticationService"]
