from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from restaurant.core.config import Settings, settings
from restaurant.main import app


def test_register_returns_token_and_plain_user(client):
    resp = client.post("/api/auth/register", json={
        "email": "Carol@Example.com",
        "password": "s3cret-pass",
        "full_name": "Carol Ade",
        "role": "admin",
    })
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["token"]
    assert body["user"]["email"] == "carol@example.com"
    assert body["user"]["role"] == "user"
    assert "password_hash" not in body["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


def test_register_duplicate_email(client, alice):
    resp = client.post("/api/auth/register", json={
        "email": "ALICE@example.com", "password": "another-pass", "full_name": "Alice Again",
    })
    assert resp.status_code == 409
    assert "already registered" in resp.json()["error"]


def test_register_rejects_short_password(client):
    resp = client.post("/api/auth/register", json={"email": "d@example.com", "password": "short", "full_name": "D"})
    assert resp.status_code == 400
    assert "password" in resp.json()["error"]


def test_login(client):
    client.post("/api/auth/register", json={"email": "eve@example.com", "password": "eve-password", "full_name": "Eve"})

    ok = client.post("/api/auth/login", json={"email": "EVE@example.com", "password": "eve-password"})
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "eve@example.com"

    bad = client.post("/api/auth/login", json={"email": "eve@example.com", "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid credentials"}

    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "eve-password"})
    assert unknown.status_code == 401


def test_missing_token_is_rejected(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}


def test_garbage_and_foreign_tokens_are_rejected(client, alice):
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    forged = jwt.encode({"id": alice.id, "type": "access"}, "some-other-secret", algorithm="HS256")
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


def test_expired_token(client, alice):
    token = jwt.encode(
        {"id": alice.id, "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Token expired"}


def test_non_access_token_type(client, alice):
    token = jwt.encode({"id": alice.id, "type": "refresh"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_of_deleted_user_is_rejected(client, db, alice, headers_for):
    headers = headers_for(alice)
    db.delete(alice)
    db.commit()

    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json() == {"error": "User not found"}


def test_admin_routes_need_admin_role(client, alice, admin, headers_for):
    resp = client.get("/api/users/", headers=headers_for(alice))
    assert resp.status_code == 403
    assert resp.json() == {"error": "Admin access required"}
    assert client.get("/api/users/", headers=headers_for(admin)).status_code == 200


def test_health_and_info(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/v1/_info").json()["service"] == "restaurant"
    assert client.get("/metrics").status_code == 200


def test_unknown_route_uses_error_shape(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_missing_secrets_are_reported():
    cfg = Settings(JWT_SECRET="", PAYSTACK_SECRET_KEY="sk")
    assert cfg.missing_secrets() == ["JWT_SECRET"]
    assert Settings(JWT_SECRET="j", PAYSTACK_SECRET_KEY="sk").missing_secrets() == []


def test_startup_refuses_to_run_without_secrets(monkeypatch):
    monkeypatch.setattr(settings, "PAYSTACK_SECRET_KEY", "")
    with pytest.raises(RuntimeError, match="PAYSTACK_SECRET_KEY"):
        with TestClient(app):
            pass
