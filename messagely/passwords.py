"""Salted one-way hashing of account passwords."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from passlib.context import CryptContext

DEFAULT_SCHEME = "bcrypt_sha256"

# Default and accepted work factor per scheme. The bcrypt schemes take a log2
# cost, PBKDF2 an iteration count. bcrypt_sha256 digests the password with
# HMAC-SHA256 first, so input past bcrypt's 72-byte limit still counts.
_WORK_FACTORS: Dict[str, Tuple[int, int, int]] = {
    "bcrypt_sha256": (12, 4, 31),
    "bcrypt": (12, 4, 31),
    "pbkdf2_sha256": (600_000, 1000, 10_000_000),
}

# Plain bcrypt ignores everything past this many bytes of the password.
_BCRYPT_MAX_BYTES = 72


def _exceeds_bcrypt_limit(plaintext: str) -> bool:
    return len(plaintext.encode("utf-8")) > _BCRYPT_MAX_BYTES


class CredentialHasher:
    """Hash and verify plaintext passwords with a configurable work factor.

    Digests produced by any scheme in the context keep verifying after the
    default scheme or work factor changes; :meth:`needs_rehash` reports the
    ones that should be upgraded.
    """

    def __init__(self, *, work_factor: Optional[int] = None, scheme: str = DEFAULT_SCHEME) -> None:
        if scheme not in _WORK_FACTORS:
            raise ValueError(f"Unsupported password scheme {scheme!r}")
        default, low, high = _WORK_FACTORS[scheme]
        if work_factor is None:
            work_factor = default
        if not low <= work_factor <= high:
            raise ValueError(f"Work factor for {scheme} must be between {low} and {high}")

        schemes = [scheme, *(name for name in _WORK_FACTORS if name != scheme)]
        self._scheme = scheme
        self._work_factor = work_factor
        self._context = CryptContext(
            schemes=schemes,
            deprecated="auto",
            **{f"{scheme}__rounds": work_factor},
        )

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def work_factor(self) -> int:
        return self._work_factor

    def hash(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Password must not be empty")
        if self._scheme == "bcrypt" and _exceeds_bcrypt_limit(plaintext):
            raise ValueError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes for bcrypt")
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return ``True`` if ``plaintext`` matches ``digest``.

        Mismatches and unrecognised digests both return ``False``.
        """

        if not plaintext or not digest:
            return False
        try:
            if _exceeds_bcrypt_limit(plaintext) and self._context.identify(digest) == "bcrypt":
                return False
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        try:
            return self._context.needs_update(digest)
        except (ValueError, TypeError):
            return True

    def dummy_verify(self) -> None:
        """Spend the CPU time of one verification without a real digest."""

        self._context.dummy_verify()


__all__ = ["CredentialHasher", "DEFAULT_SCHEME"]
