import re
from datetime import timedelta

import pytest

from greenleaf.auth import service as auth_service
from greenleaf.auth.service import IdentityService
from greenleaf.shared.exceptions import DuplicateEmailException, ValidationException
from greenleaf.shared.utils import utcnow


def _otp_from(mail):
    return re.search(r"\b(\d{6})\b", mail["text"]).group(1)


def test_register_returns_token_and_profile(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Asha Rao", "email": "asha@gmail.com", "password": "secret123"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "asha@gmail.com"
    assert data["user"]["role"] == "user"
    assert "password_hash" not in data["user"]

def test_duplicate_registration_rejected(client, user):
    response = client.post(
        "/api/auth/register",
        json={"name": "Someone Else", "email": "asha@gmail.com", "password": "other123"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "DUPLICATE_EMAIL"

    # the first account still signs in with its own password
    login = client.post("/api/auth/login", json={"email": "asha@gmail.com", "password": "secret123"})
    assert login.status_code == 200

def test_weak_password_rejected(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Asha Rao", "email": "asha@gmail.com", "password": "abcdefgh"},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

def test_login_with_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": "asha@gmail.com", "password": "wrong123"})
    assert response.status_code == 401
    assert response.json()["success"] is False

def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "nobody@gmail.com", "password": "secret123"})
    assert response.status_code == 401

def test_logout_revokes_token(client, user):
    user_id, headers = user
    assert client.get(f"/api/auth/info/{user_id}", headers=headers).status_code == 200

    assert client.post("/api/auth/logout", headers=headers).status_code == 200

    response = client.get(f"/api/auth/info/{user_id}", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Token has been revoked"

def test_missing_token(client, user):
    user_id, _ = user
    response = client.get(f"/api/auth/info/{user_id}")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"

def test_cannot_read_another_users_profile(client, register_user):
    first_id, _ = register_user()
    _, other_headers = register_user(email="ravi@gmail.com", name="Ravi Kumar")
    response = client.get(f"/api/auth/info/{first_id}", headers=other_headers)
    assert response.status_code == 403

def test_google_login_creates_account(client):
    body = {"email": "meera@gmail.com", "name": "Meera Iyer", "googleId": "g-123", "picture": "https://img/meera.png"}
    first = client.post("/api/auth/google", json=body)
    assert first.status_code == 200
    second = client.post("/api/auth/google", json=body)
    assert second.json()["data"]["user"]["id"] == first.json()["data"]["user"]["id"]

    # no password was ever set for this account
    login = client.post("/api/auth/login", json={"email": "meera@gmail.com", "password": "secret123"})
    assert login.status_code == 400
    assert login.json()["code"] == "EXTERNAL_AUTH_REQUIRED"

def test_google_login_does_not_take_over_password_account(client, user):
    body = {"email": "asha@gmail.com", "name": "Asha Rao", "googleId": "g-999"}
    response = client.post("/api/auth/google", json=body)
    assert response.status_code == 401

def test_update_profile_and_change_password(client, user):
    user_id, headers = user
    response = client.put("/api/auth/update", json={"name": "Asha R"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Asha R"

    bad = client.put(
        "/api/auth/reset-password",
        json={"currentPassword": "nope1234", "newPassword": "fresh456"},
        headers=headers,
    )
    assert bad.status_code == 400

    ok = client.put(
        "/api/auth/reset-password",
        json={"currentPassword": "secret123", "newPassword": "fresh456"},
        headers=headers,
    )
    assert ok.status_code == 200
    login = client.post("/api/auth/login", json={"email": "asha@gmail.com", "password": "fresh456"})
    assert login.status_code == 200

def test_forgot_password_and_reset_with_otp(client, user, mailer):
    response = client.post("/api/auth/forgot-password", json={"email": "asha@gmail.com"})
    assert response.status_code == 200
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == "asha@gmail.com"
    otp = _otp_from(mailer.sent[0])

    reset = client.post(
        "/api/auth/verify-otp",
        json={"email": "asha@gmail.com", "otp": otp, "newPassword": "fresh456"},
    )
    assert reset.status_code == 200

    # the code is single use
    again = client.post(
        "/api/auth/verify-otp",
        json={"email": "asha@gmail.com", "otp": otp, "newPassword": "other789"},
    )
    assert again.status_code == 400

    login = client.post("/api/auth/login", json={"email": "asha@gmail.com", "password": "fresh456"})
    assert login.status_code == 200

def test_forgot_password_unknown_email(client):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@gmail.com"})
    assert response.status_code == 404

def test_role_update_requires_admin(client, register_user, admin_headers):
    target_id, target_headers = register_user(email="ravi@gmail.com", name="Ravi Kumar")

    denied = client.put(f"/api/auth/{target_id}/role", json={"role": "admin"}, headers=target_headers)
    assert denied.status_code == 403

    granted = client.put(f"/api/auth/{target_id}/role", json={"role": "admin"}, headers=admin_headers)
    assert granted.status_code == 200
    assert granted.json()["data"]["role"] == "admin"

def test_replace_and_read_addresses(client, user):
    user_id, headers = user
    address = {
        "label": "Work", "name": "Asha Rao", "phone": "9876543210",
        "line1": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "zip": "560001",
    }
    response = client.put(f"/api/auth/{user_id}/addresses", json={"addresses": [address]}, headers=headers)
    assert response.status_code == 200

    listed = client.get(f"/api/auth/{user_id}/addresses", headers=headers).json()["data"]
    assert listed == [address]


# --- Service level ---

@pytest.fixture
def identity(db, test_settings, mailer):
    return IdentityService(db, test_settings, mailer)

async def test_duplicate_registration_keeps_single_user(identity, db):
    await identity.register("Asha Rao", "asha@gmail.com", "secret123")
    with pytest.raises(DuplicateEmailException):
        await identity.register("Asha Again", "asha@gmail.com", "secret456")
    assert await db.users.count_documents({"email": "asha@gmail.com"}) == 1

async def test_expired_otp_is_rejected(identity, mailer, monkeypatch):
    await identity.register("Asha Rao", "asha@gmail.com", "secret123")
    await identity.forgot_password("asha@gmail.com")
    otp = _otp_from(mailer.sent[-1])

    later = utcnow() + timedelta(minutes=6)
    monkeypatch.setattr(auth_service, "utcnow", lambda: later)

    with pytest.raises(ValidationException):
        await identity.reset_password_with_otp("asha@gmail.com", otp, "fresh456")

async def test_wrong_otp_is_rejected(identity, mailer):
    await identity.register("Asha Rao", "asha@gmail.com", "secret123")
    await identity.forgot_password("asha@gmail.com")
    otp = _otp_from(mailer.sent[-1])
    wrong = "000000" if otp != "000000" else "111111"

    with pytest.raises(ValidationException):
        await identity.reset_password_with_otp("asha@gmail.com", wrong, "fresh456")
