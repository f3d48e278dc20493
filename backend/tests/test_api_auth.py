import pytest

from backend.app.core.security import create_access_token, decode_access_token
from backend.app.db.models.core_types import Role

TEST_PASSWORD = "Secret123!"


def test_token_roundtrip_keeps_claims():
    token = create_access_token({"sub": "7", "role": "md", "hotel_id": None})
    payload = decode_access_token(token)
    assert payload["sub"] == "7"
    assert payload["role"] == "md"
    assert decode_access_token(token + "x") is None


def test_health(client):
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_login_success_and_me(client, md):
    r = client.post("/v1/auth/login", json={"email": md.email, "password": TEST_PASSWORD})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "md"
    assert "password_hash" not in body["user"]

    r = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.status_code == 200
    assert r.json()["id"] == md.id


def test_login_wrong_password(client, md):
    r = client.post("/v1/auth/login", json={"email": md.email, "password": "nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


def test_missing_or_bad_token_is_401(client):
    r = client.get("/v1/auth/me")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"

    r = client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_disabled_user_token_is_rejected(client, auth, make_user):
    ghost = make_user(Role.accounts, active=False)
    r = client.get("/v1/auth/me", headers=auth(ghost))
    assert r.status_code == 401


def test_register_is_superadmin_only(client, auth, superadmin, md, hotel):
    payload = {
        "name": "Meera",
        "email": "Meera@Example.com",
        "password": "longenough1",
        "role": "hotel_manager",
        "hotel_id": hotel.id,
    }
    r = client.post("/v1/auth/register", json=payload, headers=auth(md))
    assert r.status_code == 403

    r = client.post("/v1/auth/register", json=payload, headers=auth(superadmin))
    assert r.status_code == 201, r.text
    assert r.json()["email"] == "meera@example.com"
    assert r.json()["hotel_id"] == hotel.id

    r = client.post("/v1/auth/register", json=payload, headers=auth(superadmin))
    assert r.status_code == 409


def test_register_hotel_manager_needs_hotel(client, auth, superadmin):
    r = client.post(
        "/v1/auth/register",
        json={"name": "Arun", "email": "arun@example.com", "password": "longenough1", "role": "hotel_manager"},
        headers=auth(superadmin),
    )
    assert r.status_code == 400


@pytest.mark.parametrize("password", ["x" * 100, "é" * 40])
def test_register_rejects_password_longer_than_72_bytes(client, auth, superadmin, password):
    """
    GIVEN
    - a password within 128 characters but over 72 bytes once UTF-8 encoded
    WHEN
    - superadmin registers a user with it
    THEN
    - 422 validation error, no user created
    """
    # ---------- ACT ----------
    r = client.post(
        "/v1/auth/register",
        json={"name": "Long", "email": "long@example.com", "password": password, "role": "accounts"},
        headers=auth(superadmin),
    )

    # ---------- ASSERT ----------
    assert r.status_code == 422
    assert r.json()["message"] == "Validation error"
    login = client.post("/v1/auth/login", json={"email": "long@example.com", "password": password})
    assert login.status_code == 401


def test_validation_error_shape(client):
    r = client.post("/v1/auth/login", json={"email": "not-an-email"})
    assert r.status_code == 422
    body = r.json()
    assert body["message"] == "Validation error"
    assert isinstance(body["errors"], list) and body["errors"]


def test_change_role_and_disable_user(client, auth, superadmin, officer, hotel):
    r = client.patch(
        f"/v1/users/{officer.id}/role",
        json={"role": "hotel_manager", "hotel_id": hotel.id},
        headers=auth(superadmin),
    )
    assert r.status_code == 200
    assert r.json()["role"] == "hotel_manager"

    r = client.delete(f"/v1/users/{officer.id}", headers=auth(superadmin))
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    r = client.delete(f"/v1/users/{superadmin.id}", headers=auth(superadmin))
    assert r.status_code == 400

    r = client.get("/v1/users", headers=auth(superadmin))
    assert [u["id"] for u in r.json()] == [superadmin.id]
