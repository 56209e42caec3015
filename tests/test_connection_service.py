from __future__ import annotations

import pytest

from syncsketch.core.errors import BadRequestError, NotFoundError, UnauthorizedError, ValidationError
from syncsketch.repositories.user_repository import UserRepository
from syncsketch.services.connection_service import ConnectionService


@pytest.fixture()
def people():
    repo = UserRepository()
    return {
        name: repo.create_user(
            user_name=name, email=f"{name}@example.com", name=name.title(), password_hash="argon2$x"
        )
        for name in ("alice", "bob", "carol")
    }


@pytest.fixture()
def svc():
    return ConnectionService()


def test_send_and_accept(svc, people):
    alice, bob = people["alice"], people["bob"]
    request = svc.send_request(alice, bob.id)
    assert (request["from"], request["to"], request["status"]) == (alice.id, bob.id, "pending")
    assert svc.status(alice, bob.id).status == "sent"
    assert svc.status(bob, alice.id).status == "received"

    pending = svc.list_pending(bob)
    assert pending[0]["from"]["userName"] == "alice"
    assert svc.list_sent(alice)[0]["to"]["userName"] == "bob"

    accepted = svc.accept(bob, request["id"])
    assert accepted["status"] == "accepted"
    assert accepted["from"]["id"] == alice.id

    for me, other in ((alice, bob), (bob, alice)):
        connections = svc.list_connections(me)
        assert [c["user"]["id"] for c in connections] == [other.id]
        assert svc.status(me, other.id).status == "connected"


def test_send_request_guards(svc, people):
    alice, bob = people["alice"], people["bob"]
    with pytest.raises(BadRequestError, match="yourself"):
        svc.send_request(alice, alice.id)
    with pytest.raises(NotFoundError):
        svc.send_request(alice, "f" * 32)
    with pytest.raises(ValidationError):
        svc.send_request(alice, "not-an-id")

    svc.send_request(alice, bob.id)
    with pytest.raises(BadRequestError, match="already sent"):
        svc.send_request(alice, bob.id)
    with pytest.raises(BadRequestError, match="pending request from this user"):
        svc.send_request(bob, alice.id)


def test_only_the_recipient_can_answer(svc, people):
    alice, bob, carol = people["alice"], people["bob"], people["carol"]
    request = svc.send_request(alice, bob.id)
    with pytest.raises(UnauthorizedError):
        svc.accept(carol, request["id"])
    with pytest.raises(UnauthorizedError):
        svc.accept(alice, request["id"])
    svc.reject(bob, request["id"])
    with pytest.raises(BadRequestError, match="no longer pending"):
        svc.accept(bob, request["id"])
    assert svc.status(alice, bob.id).status == "rejected"


def test_rejected_request_is_reused_by_either_side(svc, people):
    alice, bob = people["alice"], people["bob"]
    first = svc.send_request(alice, bob.id)
    svc.reject(bob, first["id"])

    again = svc.send_request(bob, alice.id)
    assert again["id"] == first["id"]
    assert (again["from"], again["status"]) == (bob.id, "pending")
    assert svc.status(alice, bob.id).status == "received"


def test_cancel_and_remove(svc, people):
    alice, bob = people["alice"], people["bob"]
    request = svc.send_request(alice, bob.id)
    with pytest.raises(UnauthorizedError):
        svc.cancel(bob, request["id"])
    with pytest.raises(BadRequestError, match="accepted"):
        svc.remove(alice, request["id"])
    svc.cancel(alice, request["id"])
    assert svc.status(alice, bob.id).status == "none"
    with pytest.raises(NotFoundError):
        svc.cancel(alice, request["id"])

    request = svc.send_request(alice, bob.id)
    svc.accept(bob, request["id"])
    with pytest.raises(UnauthorizedError):
        svc.remove(people["carol"], request["id"])
    svc.remove(bob, request["id"])
    assert svc.list_connections(alice) == []


def test_status_for_self(svc, people):
    alice = people["alice"]
    result = svc.status(alice, alice.id)
    assert (result.status, result.connection_id) == ("self", None)
