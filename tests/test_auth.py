"""Tests for registration, login, refresh rotation and token validation."""

from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import select

from conftest import refresh_cookie, register, run
from travel_api.database import get_db_context
from travel_api.models import User
from travel_api.services.auth import AuthService


def _expire_refresh_token(user_id: int) -> None:
    async def _expire() -> None:
        async with get_db_context() as session:
            user = await session.get(User, user_id)
            user.refresh_token_expires_at = datetime.utcnow() - timedelta(minutes=1)

    run(_expire())


def _stored_refresh_token(user_id: int):
    async def _load():
        async with get_db_context() as session:
            result = await session.execute(select(User.refresh_token).where(User.id == user_id))
            return result.scalar_one()

    return run(_load())


def test_register_returns_tokens_and_cookie(client: TestClient) -> None:
    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "Travel123!", "username": "anna"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "anna@example.com"
    assert body["username"] == "anna"
    assert body["access_token"]

    set_cookie = response.headers["set-cookie"]
    assert "HttpOnly" in set_cookie
    assert "Secure" in set_cookie
    assert "samesite=none" in set_cookie.lower()
    assert refresh_cookie(response) == _stored_refresh_token(body["id"])


def test_register_same_email_twice_conflicts(client: TestClient) -> None:
    register(client)

    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "Another123!", "username": "anna2"},
    )

    assert response.status_code == 409


def test_register_same_email_past_lookup_is_conflict(client: TestClient, monkeypatch) -> None:
    register(client)

    async def no_user(self, email):
        return None

    monkeypatch.setattr(AuthService, "get_user_by_email", no_user)
    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "Travel123!", "username": "other"},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "User with this email already exists"


def test_register_invalid_email_is_bad_request(client: TestClient) -> None:
    response = client.post(
        "/api/register",
        json={"email": "not-an-email", "password": "Travel123!", "username": "anna"},
    )

    assert response.status_code == 400


def test_login_access_token_subject_is_user_id(client: TestClient) -> None:
    user = register(client)

    response = client.post("/api/login", json={"email": "anna@example.com", "password": "Travel123!"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user["id"]
    claims = jwt.get_unverified_claims(body["access_token"])
    assert claims["sub"] == str(user["id"])
    assert claims["email"] == "anna@example.com"


def test_login_wrong_password_conflicts(client: TestClient) -> None:
    register(client)

    response = client.post("/api/login", json={"email": "anna@example.com", "password": "WrongPass1!"})

    assert response.status_code == 409


def test_login_unknown_email_not_found(client: TestClient) -> None:
    response = client.post("/api/login", json={"email": "nobody@example.com", "password": "Travel123!"})

    assert response.status_code == 404


def test_login_replaces_refresh_token(client: TestClient) -> None:
    user = register(client)
    first = _stored_refresh_token(user["id"])

    response = client.post("/api/login", json={"email": "anna@example.com", "password": "Travel123!"})

    assert refresh_cookie(response) == _stored_refresh_token(user["id"])
    assert refresh_cookie(response) != first


def test_refresh_without_cookie_is_bad_request(client: TestClient) -> None:
    response = client.post("/api/refresh")

    assert response.status_code == 400


def test_refresh_unknown_token_unauthorized(client: TestClient) -> None:
    register(client)

    response = client.post("/api/refresh", headers={"Cookie": "refreshToken=not-a-real-token"})

    assert response.status_code == 401


def test_refresh_expired_token_unauthorized(client: TestClient) -> None:
    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "Travel123!", "username": "anna"},
    )
    token = refresh_cookie(response)
    _expire_refresh_token(response.json()["id"])

    refreshed = client.post("/api/refresh", headers={"Cookie": f"refreshToken={token}"})

    assert refreshed.status_code == 401


def test_refresh_rotates_token(client: TestClient) -> None:
    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "Travel123!", "username": "anna"},
    )
    old_token = refresh_cookie(response)

    refreshed = client.post("/api/refresh", headers={"Cookie": f"refreshToken={old_token}"})

    assert refreshed.status_code == 200
    new_token = refresh_cookie(refreshed)
    assert new_token and new_token != old_token
    assert refreshed.json()["access_token"]

    # The previous token no longer works
    replay = client.post("/api/refresh", headers={"Cookie": f"refreshToken={old_token}"})
    assert replay.status_code == 401


def test_validate_token_returns_user(client: TestClient) -> None:
    user = register(client)

    response = client.post(
        "/api/validate-token",
        headers={"Authorization": f"Bearer {user['access_token']}"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user["id"]
    assert body["email"] == "anna@example.com"
    assert body["username"] == "anna"
    assert body["refresh_token"] == _stored_refresh_token(user["id"])


def test_validate_token_rejects_garbage(client: TestClient) -> None:
    response = client.post("/api/validate-token", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_validate_token_without_header_unauthorized(client: TestClient) -> None:
    response = client.post("/api/validate-token")

    assert response.status_code == 401


def test_list_users_hides_secrets(client: TestClient) -> None:
    register(client)
    register(client, email="ben@example.com", username="ben")

    response = client.get("/api/users")

    assert response.status_code == 200
    users = response.json()
    assert [u["username"] for u in users] == ["anna", "ben"]
    for user in users:
        assert set(user) == {"id", "email", "username"}
