"""Bearer token authentication for the messaging API."""
from __future__ import annotations

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth import AuthenticationService
from .errors import UnauthorizedError

_CHALLENGE = {"WWW-Authenticate": "Bearer"}


class BearerTokenAuth:
    """Resolve ``Authorization: Bearer`` headers to a username.

    Pass the bound :meth:`current_username` to ``Depends``. FastAPI reads
    postponed annotations through the callable's ``__globals__``, which bound
    methods carry and instances do not.
    """

    def __init__(self, auth: AuthenticationService) -> None:
        self._auth = auth
        self._bearer = HTTPBearer(auto_error=False)

    async def current_username(self, request: Request) -> str:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing bearer token",
                headers=_CHALLENGE,
            )

        try:
            return self._auth.authenticate(credentials.credentials)
        except UnauthorizedError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(exc),
                headers=_CHALLENGE,
            ) from exc


__all__ = ["BearerTokenAuth"]
