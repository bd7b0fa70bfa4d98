from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from messagely.database import Database
from messagely.errors import DuplicateKeyError, NotFoundError
from messagely.messages import MessageStore
from messagely.users import UserDirectory


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "messagely.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def users(database: Database) -> UserDirectory:
    directory = UserDirectory(database)
    directory.create("alice", "hash-a", first_name="Alice", last_name="Anders", phone="555-0100")
    directory.create("bob", "hash-b", first_name="Bob", last_name="Baker", phone="555-0101")
    return directory


@pytest.fixture()
def store(database: Database, users: UserDirectory) -> MessageStore:
    return MessageStore(database)


def test_initialize_is_idempotent(database: Database) -> None:
    database.initialize()
    database.initialize()


def test_create_and_find_user(users: UserDirectory) -> None:
    alice = users.find_by_username("alice")
    assert alice is not None
    assert alice.password_hash == "hash-a"
    assert alice.first_name == "Alice"
    assert alice.phone == "555-0100"
    assert alice.joined_at.tzinfo is not None
    assert alice.last_login_at == alice.joined_at

    assert users.find_by_username("nobody") is None
    with pytest.raises(NotFoundError):
        users.get("nobody")


def test_duplicate_username_is_rejected(users: UserDirectory) -> None:
    with pytest.raises(DuplicateKeyError):
        users.create("alice", "other", first_name="A", last_name="B", phone="1")


def test_empty_username_is_rejected(users: UserDirectory) -> None:
    with pytest.raises(ValueError):
        users.create("   ", "hash", first_name="A", last_name="B", phone="1")


@pytest.mark.parametrize(
    "profile",
    [
        {"first_name": "  ", "last_name": "B", "phone": "1"},
        {"first_name": "A", "last_name": "", "phone": "1"},
        {"first_name": "A", "last_name": "B", "phone": " \t"},
    ],
)
def test_blank_profile_fields_are_rejected(users: UserDirectory, profile) -> None:
    with pytest.raises(ValueError):
        users.create("carol", "hash", **profile)
    assert users.find_by_username("carol") is None


def test_touch_last_login(users: UserDirectory) -> None:
    before = users.get("bob").last_login_at
    touched = users.touch_last_login("bob")
    assert touched >= before
    assert users.get("bob").last_login_at == touched

    with pytest.raises(NotFoundError):
        users.touch_last_login("nobody")


def test_update_password_hash(users: UserDirectory) -> None:
    users.update_password_hash("bob", "new-hash")
    assert users.get("bob").password_hash == "new-hash"
    with pytest.raises(NotFoundError):
        users.update_password_hash("nobody", "new-hash")


def test_list_all_returns_basic_info(users: UserDirectory) -> None:
    listing = {entry.username: entry for entry in users.list_all()}
    assert set(listing) == {"alice", "bob"}
    assert listing["bob"].first_name == "Bob"
    assert listing["bob"].last_name == "Baker"


def test_create_message_requires_existing_users(store: MessageStore) -> None:
    with pytest.raises(NotFoundError):
        store.create("alice", "nobody", "hi")
    with pytest.raises(NotFoundError):
        store.create("nobody", "alice", "hi")
    assert store.list_sent_by("alice") == []


def test_create_message_rejects_empty_body(store: MessageStore) -> None:
    with pytest.raises(ValueError):
        store.create("alice", "bob", "   ")


def test_message_detail_includes_both_participants(store: MessageStore) -> None:
    created = store.create("alice", "bob", "hi")
    assert created.read_at is None

    detail = store.get_detail(created.id)
    assert detail.message == created
    assert detail.from_user.username == "alice"
    assert detail.from_user.phone == "555-0100"
    assert detail.to_user.username == "bob"
    assert detail.to_user.last_name == "Baker"

    with pytest.raises(NotFoundError):
        store.get_detail(created.id + 100)
    with pytest.raises(NotFoundError):
        store.get(created.id + 100)


def test_message_lists_are_ordered_by_id(store: MessageStore) -> None:
    first = store.create("alice", "bob", "one")
    store.create("bob", "alice", "reply")
    third = store.create("alice", "bob", "two")

    received = store.list_received_by("bob")
    assert [detail.message.id for detail in received] == [first.id, third.id]
    assert all(detail.from_user.username == "alice" for detail in received)

    sent = store.list_sent_by("alice")
    assert [detail.message.body for detail in sent] == ["one", "two"]
    assert all(detail.to_user.first_name == "Bob" for detail in sent)


def test_mark_read_is_a_conditional_update(store: MessageStore) -> None:
    message = store.create("alice", "bob", "hi")
    first = message.sent_at + timedelta(seconds=5)
    second = message.sent_at + timedelta(seconds=10)

    assert store.mark_read(message.id, first) is True
    assert store.mark_read(message.id, second) is False
    assert store.get(message.id).read_at == first


def test_timestamps_are_utc(store: MessageStore) -> None:
    message = store.create("alice", "bob", "hi")
    stored = store.get(message.id)
    assert stored.sent_at == message.sent_at
    assert stored.sent_at.utcoffset() == timedelta(0)
    assert stored.sent_at <= datetime.now(timezone.utc)
