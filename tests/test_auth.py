from datetime import datetime, timedelta, timezone

import jwt
import pytest

from storefront import config
from storefront.auth import create_access_token, decode_access_token


def test_signup_returns_user_and_token(client):
    response = client.post("/auth/signup", json={"email": "new@example.com", "password": "pw123456"})

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["name"] == "new"
    assert body["user"]["role"] == "USER"
    assert "password" not in body["user"]

    claims = jwt.decode(body["token"], config.JWT_SECRET, algorithms=["HS256"])
    assert claims["userId"] == body["user"]["id"]
    assert claims["email"] == "new@example.com"
    assert claims["role"] == "USER"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_signup_rejects_duplicate_email(client, user):
    response = client.post("/auth/signup", json={"email": user.email, "password": "whatever"})

    assert response.status_code == 400
    assert response.json() == {"error": "User already exists with this email"}


def test_signup_requires_password(client):
    assert client.post("/auth/signup", json={"email": "x@example.com"}).status_code == 400


def test_login(client, user):
    response = client.post("/auth/login", json={"email": user.email, "password": "secret123"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id
    assert decode_access_token(response.json()["token"]).user_id == user.id


@pytest.mark.parametrize("email,password", [
    ("shopper@example.com", "wrong"),
    ("nobody@example.com", "secret123"),
])
def test_login_failures_share_one_message(client, user, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_signup_then_login_with_password(client):
    client.post("/auth/signup", json={"email": "round@example.com", "password": "pw", "name": "Round"})

    response = client.post("/auth/login", json={"email": "round@example.com", "password": "pw"})

    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Round"


def test_bearer_header_validation(client):
    assert client.get("/users/profile").json() == {"error": "Authentication required"}
    assert client.get("/users/profile", headers={"Authorization": "Token abc"}).status_code == 401

    bad = client.get("/users/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid token"}


def test_expired_token_is_rejected(client, user):
    past = datetime.now(timezone.utc) - timedelta(days=8)
    token = jwt.encode(
        {"userId": user.id, "email": user.email, "role": "USER", "iat": past, "exp": past + timedelta(days=7)},
        config.JWT_SECRET,
        algorithm="HS256"
    )

    response = client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client, user):
    token = jwt.encode({"userId": user.id, "email": user.email, "role": "ADMIN"}, "other-secret",
                       algorithm="HS256")

    response = client.get("/admin/stats", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_missing_secret_fails_closed(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", None)

    with pytest.raises(RuntimeError):
        create_access_token("user-1", "a@example.com", "USER")
    with pytest.raises(RuntimeError):
        decode_access_token("anything")
    with pytest.raises(RuntimeError):
        config.require_jwt_secret()
