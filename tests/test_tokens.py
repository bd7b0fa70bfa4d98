from __future__ import annotations

import base64
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from messagely.errors import InvalidTokenError
from messagely.tokens import TokenIssuer


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _flip_last_byte(value: str) -> str:
    raw = base64.urlsafe_b64decode(value)
    tampered = raw[:-1] + bytes([raw[-1] ^ 0x01])
    return base64.urlsafe_b64encode(tampered).decode("ascii")


def test_issued_token_validates_to_subject() -> None:
    issuer = TokenIssuer("tests-secret-key")
    token = issuer.issue("alice")

    assert token.subject == "alice"
    assert token.issued_at.tzinfo is not None
    assert issuer.validate(token.value) == "alice"


def test_tampered_signature_is_rejected() -> None:
    issuer = TokenIssuer("tests-secret-key")
    token = issuer.issue("alice")

    with pytest.raises(InvalidTokenError):
        issuer.validate(_flip_last_byte(token.value))


def test_token_from_other_secret_is_rejected() -> None:
    forged = TokenIssuer("attacker-secret").issue("alice")
    with pytest.raises(InvalidTokenError):
        TokenIssuer("tests-secret-key").validate(forged.value)


@pytest.mark.parametrize("value", ["", "not-a-token", "é" * 10, None, 42])
def test_malformed_tokens_are_rejected(value) -> None:
    with pytest.raises(InvalidTokenError):
        TokenIssuer("tests-secret-key").validate(value)


def test_expired_token_is_rejected() -> None:
    clock = FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
    issuer = TokenIssuer("tests-secret-key", lifetime=timedelta(minutes=5), clock=clock)
    token = issuer.issue("bob")
    assert token.issued_at == datetime(2026, 1, 1, tzinfo=timezone.utc)

    clock.now += timedelta(minutes=4)
    assert issuer.validate(token.value) == "bob"

    clock.now += timedelta(minutes=2)
    with pytest.raises(InvalidTokenError):
        issuer.validate(token.value)


def test_tokens_without_lifetime_do_not_expire() -> None:
    clock = FakeClock(datetime(2020, 1, 1, tzinfo=timezone.utc))
    issuer = TokenIssuer("tests-secret-key", clock=clock)
    token = issuer.issue("bob")
    assert TokenIssuer("tests-secret-key").validate(token.value) == "bob"


def test_issuer_requires_secret_and_positive_lifetime() -> None:
    with pytest.raises(ValueError):
        TokenIssuer("")
    with pytest.raises(ValueError):
        TokenIssuer("secret", lifetime=timedelta(0))
