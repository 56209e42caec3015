"""
Smoke tests for the SQL repositories against a temporary SQLite database.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from syncsketch.core.errors import ConflictError
from syncsketch.db.models import STATUS_ACCEPTED, STATUS_PENDING, STATUS_REJECTED
from syncsketch.repositories import ConnectionRepository, OtpRepository, UserRepository


def _create(repo: UserRepository, user_name: str):
    return repo.create_user(
        user_name=user_name, email=f"{user_name}@example.com", name=user_name.title(), password_hash="argon2$x"
    )


def test_user_lookup_is_case_insensitive():
    repo = UserRepository()
    user = repo.create_user(user_name="Alice", email="Alice@Example.com", name="Alice", password_hash="argon2$x")
    assert user.user_name == "alice"
    assert user.roles == ["viewer"]
    assert repo.get_by_user_name("ALICE").id == user.id
    assert repo.get_by_email("alice@example.COM").id == user.id
    assert repo.find_by_identity(user_name="alice", email="other@example.com").id == user.id
    assert repo.exists_email("alice@example.com")
    assert not repo.exists_email("alice@example.com", exclude_id=user.id)


def test_duplicate_user_name_is_a_conflict():
    repo = UserRepository()
    _create(repo, "alice")
    with pytest.raises(ConflictError):
        repo.create_user(user_name="alice", email="other@example.com", name="Other", password_hash="argon2$x")


def test_update_user_rejects_unknown_fields():
    repo = UserRepository()
    user = _create(repo, "alice")
    updated = repo.update_user(user.id, name="Alicia")
    assert updated.name == "Alicia"
    with pytest.raises(ValueError):
        repo.update_user(user.id, password_hash="nope")


def test_signup_otp_is_replaced():
    repo = OtpRepository()
    expires = datetime.now(timezone.utc) + timedelta(minutes=10)
    first = repo.replace_signup_otp("a@example.com", "alice", "hash-1", expires)
    second = repo.replace_signup_otp("A@example.com", "Alice", "hash-2", expires)
    assert repo.get(first.id) is None
    found = repo.find_signup("a@example.com", "alice")
    assert found.id == second.id
    assert found.code_hash == "hash-2"


def test_expired_codes_are_purged_on_create():
    repo = OtpRepository()
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    stale = repo.replace_signup_otp("old@example.com", "old", "hash", past)
    repo.replace_signup_otp("new@example.com", "new", "hash", datetime.now(timezone.utc) + timedelta(minutes=10))
    assert repo.get(stale.id) is None


def test_connection_lifecycle():
    users = UserRepository()
    alice, bob = _create(users, "alice"), _create(users, "bob")
    repo = ConnectionRepository()

    created = repo.create(alice.id, bob.id)
    assert created.status == STATUS_PENDING
    assert repo.find_between(bob.id, alice.id).id == created.id
    assert [c.id for c in repo.list_received(bob.id)] == [created.id]
    assert [c.id for c in repo.list_sent(alice.id)] == [created.id]

    repo.set_status(created.id, STATUS_REJECTED)
    reopened = repo.reopen(created.id, bob.id, alice.id)
    assert reopened.from_user_id == bob.id
    assert reopened.status == STATUS_PENDING

    repo.set_status(created.id, STATUS_ACCEPTED)
    assert [c.id for c in repo.list_for_user(alice.id, STATUS_ACCEPTED)] == [created.id]
    repo.delete(created.id)
    assert repo.get(created.id) is None


def test_failed_attempts_are_counted_until_the_code_is_dropped():
    repo = OtpRepository()
    otp = repo.replace_signup_otp(
        "a@example.com", "alice", "hash", datetime.now(timezone.utc) + timedelta(minutes=10)
    )
    assert repo.record_failed_attempt(otp.id, max_attempts=2) == 1
    assert repo.get(otp.id).failed_attempts == 1
    assert repo.record_failed_attempt(otp.id, max_attempts=2) == 2
    assert repo.get(otp.id) is None
