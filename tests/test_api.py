"""
End-to-end HTTP scenarios through the FastAPI app.
"""
from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from conftest import STRONG_PASSWORD, signup_payload
from syncsketch.app import create_app
from syncsketch.core.config import get_settings
from syncsketch.repositories.user_repository import UserRepository

AUTH = "/api/v1/auth"
CONN = "/api/v1/connection"


def _signup(client, outbox, user_name="alice", email="alice@x.com"):
    resp = client.post(f"{AUTH}/signup/request-otp", json={"userName": user_name, "email": email})
    assert resp.status_code == 200, resp.text
    code = outbox.last_code(email)
    resp = client.post(f"{AUTH}/signup/complete", json={**signup_payload(user_name, email), "otpCode": code})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _auth(body) -> dict:
    return {"Authorization": f"Bearer {body['token']}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["environment"] == "test"
    assert body["timestamp"].endswith("Z")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_signup_scenario(client, outbox):
    resp = client.post(f"{AUTH}/signup/request-otp", json={"userName": "alice", "email": "alice@x.com"})
    assert resp.json() == {
        "message": "OTP sent successfully to your email",
        "data": {"email": "alice@x.com", "userName": "alice"},
    }
    code = outbox.last_code("alice@x.com")

    resp = client.post(f"{AUTH}/signup/complete", json={**signup_payload("alice", "alice@x.com"), "otpCode": code})
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["isVerified"] is True
    assert "password" not in str(body["user"]).lower()
    assert "token" in resp.cookies
    # welcome mail goes out after the response
    assert any(m["subject"] == "Welcome to SyncSketch" for m in outbox)

    replay = client.post(f"{AUTH}/signup/complete", json={**signup_payload("alice", "alice@x.com"), "otpCode": code})
    assert replay.status_code == 400
    assert replay.json()["message"] == "Invalid or expired OTP"


def test_signup_with_wrong_code(client, outbox):
    client.post(f"{AUTH}/signup/request-otp", json={"userName": "alice", "email": "alice@x.com"})
    code = outbox.last_code("alice@x.com")
    wrong = "000000" if code != "000000" else "111111"
    resp = client.post(f"{AUTH}/signup/complete", json={**signup_payload("alice", "alice@x.com"), "otpCode": wrong})
    assert resp.status_code == 400
    assert resp.json() == {"status": "fail", "message": "Invalid or expired OTP"}


def test_validation_errors_are_field_mapped(client):
    resp = client.post(f"{AUTH}/signup/request-otp", json={"userName": "a", "email": "bad"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "fail"
    assert set(body["errors"]) == {"userName", "email"}


def test_duplicate_signup_is_a_conflict(client, outbox):
    _signup(client, outbox)
    resp = client.post(f"{AUTH}/signup/request-otp", json={"userName": "alice", "email": "other@x.com"})
    assert resp.status_code == 409
    assert resp.json()["message"] == "Username already exists"


def test_signin_wrong_password_matches_unknown_user(client, outbox):
    _signup(client, outbox)
    wrong = client.post(f"{AUTH}/signin", json={"userName": "alice", "password": "Wrong#2024"})
    unknown = client.post(f"{AUTH}/signin", json={"userName": "nobody", "password": "Wrong#2024"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_signin_profile_and_logout(client, outbox):
    _signup(client, outbox)
    resp = client.post(f"{AUTH}/signin", json={"email": "alice@x.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["lastLoginRelative"] == "less than a minute ago"
    assert body["user"]["lastLoginFormatted"]

    profile = client.get(f"{AUTH}/profile", headers=_auth(body))
    assert profile.status_code == 200
    assert profile.json()["user"]["userName"] == "alice"

    # the cookie alone authenticates too
    assert client.get(f"{AUTH}/profile").status_code == 200
    assert client.post(f"{AUTH}/logout").json() == {"message": "Logged out successfully"}
    client.cookies.clear()
    anonymous = client.get(f"{AUTH}/profile")
    assert anonymous.status_code == 401
    assert anonymous.json()["message"] == "No authentication token provided"


def test_invalid_token_is_rejected(client):
    resp = client.get(f"{AUTH}/profile", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token"


def test_edit_profile_and_change_password(client, outbox):
    headers = _auth(_signup(client, outbox))
    resp = client.patch(f"{AUTH}/editProfile", json={"name": "Alicia"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Alicia"

    bad = client.patch(f"{AUTH}/editProfile", json={"isBlocked": True}, headers=headers)
    assert bad.status_code == 400

    resp = client.patch(
        f"{AUTH}/changePassword",
        json={"currentPassword": STRONG_PASSWORD, "newPassword": "Better#2025"},
        headers=headers,
    )
    assert resp.json() == {"message": "Password updated successfully"}
    resp = client.post(f"{AUTH}/signin", json={"userName": "alice", "password": "Better#2025"})
    assert resp.status_code == 200


def test_forgot_and_reset_password(client, outbox):
    _signup(client, outbox)
    unknown = client.post(f"{AUTH}/forgotPassword", json={"email": "ghost@x.com"})
    known = client.post(f"{AUTH}/forgotPassword", json={"email": "alice@x.com"})
    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()

    code = outbox.last_code("alice@x.com")
    resp = client.post(
        f"{AUTH}/resetPassword",
        json={"email": "alice@x.com", "otpCode": code, "newPassword": "Better#2025"},
    )
    assert resp.json() == {"message": "Password reset successfully"}
    assert client.post(f"{AUTH}/signin", json={"userName": "alice", "password": "Better#2025"}).status_code == 200


def test_connection_scenarios(client, outbox):
    alice = _signup(client, outbox, "alice", "alice@x.com")
    bob = _signup(client, outbox, "bob", "bob@x.com")
    client.cookies.clear()
    alice_id, bob_id = alice["user"]["id"], bob["user"]["id"]

    resp = client.post(f"{CONN}/sendRequest", json={"toUserId": alice_id}, headers=_auth(alice))
    assert resp.status_code == 400
    resp = client.post(f"{CONN}/sendRequest", json={"toUserId": "f" * 32}, headers=_auth(alice))
    assert resp.status_code == 404

    first = client.post(f"{CONN}/sendRequest", json={"toUserId": bob_id}, headers=_auth(alice))
    assert first.status_code == 201
    request_id = first.json()["request"]["id"]
    second = client.post(f"{CONN}/sendRequest", json={"toUserId": bob_id}, headers=_auth(alice))
    assert second.status_code == 400
    assert "already sent" in second.json()["message"]

    pending = client.get(f"{CONN}/requests", headers=_auth(bob)).json()["requests"]
    assert [r["id"] for r in pending] == [request_id]
    assert client.post(f"{CONN}/accept/{request_id}", headers=_auth(alice)).status_code == 401

    accepted = client.post(f"{CONN}/accept/{request_id}", headers=_auth(bob))
    assert accepted.status_code == 200
    assert accepted.json()["connection"]["status"] == "accepted"
    assert client.post(f"{CONN}/reject/{request_id}", headers=_auth(bob)).status_code == 400

    for me, other_id in ((alice, bob_id), (bob, alice_id)):
        connections = client.get(f"{CONN}/", headers=_auth(me)).json()["connections"]
        assert [c["user"]["id"] for c in connections] == [other_id]
        status = client.get(f"{CONN}/status/{other_id}", headers=_auth(me)).json()
        assert (status["status"], status["connectionId"]) == ("connected", request_id)

    assert client.delete(f"{CONN}/cancel/{request_id}", headers=_auth(alice)).status_code == 400
    assert client.delete(f"{CONN}/remove/{request_id}", headers=_auth(bob)).status_code == 200
    assert client.get(f"{CONN}/", headers=_auth(alice)).json()["connections"] == []


def test_malformed_request_id(client, outbox):
    alice = _signup(client, outbox)
    resp = client.post(f"{CONN}/accept/xyz", headers=_auth(alice))
    assert resp.status_code == 400
    assert resp.json()["errors"] == {"requestId": "Invalid request ID format"}


def test_signin_is_rate_limited(client):
    statuses = [
        client.post(f"{AUTH}/signin", json={"userName": "nobody", "password": "Wrong#2024"}).status_code
        for _ in range(11)
    ]
    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429


def test_app_uses_the_settings_it_was_built_with(tmp_path, outbox):
    own_db = tmp_path / "own.db"
    settings = replace(
        get_settings(),
        jwt_secret="explicit-secret-passed-in",
        database_url=f"sqlite:///{own_db}",
    )
    with TestClient(create_app(settings)) as own_client:
        body = _signup(own_client, outbox)
        own_client.cookies.clear()
        profile = own_client.get(f"{AUTH}/profile", headers=_auth(body))
        assert profile.status_code == 200, profile.text
        assert profile.json()["user"]["id"] == body["user"]["id"]

    assert UserRepository(settings.database_url).get_by_user_name("alice") is not None
    assert UserRepository().get_by_user_name("alice") is None


def test_forwarded_for_is_ignored_from_untrusted_peers(client):
    statuses = {
        client.post(
            f"{AUTH}/signin",
            json={"userName": "nobody", "password": "Wrong#2024"},
            headers={"X-Forwarded-For": f"10.0.0.{i}"},
        ).status_code
        for i in range(11)
    }
    assert 429 in statuses


def test_forwarded_for_is_used_behind_a_trusted_proxy():
    # TestClient connects from the host "testclient"
    settings = replace(get_settings(), trusted_proxies=("testclient",))
    with TestClient(create_app(settings)) as proxied:
        statuses = [
            proxied.post(
                f"{AUTH}/signin",
                json={"userName": "nobody", "password": "Wrong#2024"},
                headers={"X-Forwarded-For": f"10.0.0.{i}"},
            ).status_code
            for i in range(11)
        ]
    assert set(statuses) == {401}


def test_blocked_user_token_is_rejected(client, outbox):
    body = _signup(client, outbox)
    client.cookies.clear()
    UserRepository().update_user(body["user"]["id"], is_blocked=True)
    resp = client.get(f"{AUTH}/profile", headers=_auth(body))
    assert resp.status_code == 401
    assert resp.json()["message"] == "User account is blocked"


def test_edit_profile_rejects_taken_email(client, outbox):
    alice = _signup(client, outbox, "alice", "alice@x.com")
    _signup(client, outbox, "bob", "bob@x.com")
    client.cookies.clear()
    resp = client.patch(f"{AUTH}/editProfile", json={"email": "bob@x.com"}, headers=_auth(alice))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email is already taken"
