"""Tests for the session lifecycle: login, token transport, refresh rotation, logout."""

import pytest

from vortexstream.auth.tokens import create_access_token
from vortexstream.db import crud


async def seed_user(test_db, make_user, username="alice"):
    async with test_db() as db:
        return await make_user(db, username)


@pytest.mark.asyncio
async def test_protected_endpoint_without_token(client):
    response = await client.get("/api/v1/users/current-user")

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["statusCode"] == 401
    assert body["data"] is None
    assert body["errors"] == []


@pytest.mark.asyncio
async def test_bearer_token_authenticates(client, test_db, make_user, auth_headers):
    user = await seed_user(test_db, make_user)

    response = await client.get("/api/v1/users/current-user", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == user.id
    assert data["username"] == "alice"
    assert "passwordHash" not in data
    assert "refreshTokenEnc" not in data


@pytest.mark.asyncio
async def test_cookie_token_authenticates(client, test_db, make_user, mock_settings):
    user = await seed_user(test_db, make_user)
    client.cookies.set("accessToken", create_access_token(mock_settings, user))

    response = await client.get("/api/v1/users/current-user")

    assert response.status_code == 200
    assert response.json()["data"]["id"] == user.id


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/v1/users/current-user", "/api/v1/videos"])
async def test_invalid_token_rejected(client, path):
    response = await client.get(path, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid access token"


@pytest.mark.asyncio
async def test_token_for_deleted_user_rejected(client, test_db, make_user, auth_headers):
    user = await seed_user(test_db, make_user)
    headers = auth_headers(user)
    async with test_db() as db:
        await crud.delete_row(db, await crud.get_user_by_id(db, user.id))

    response = await client.get("/api/v1/users/current-user", headers=headers)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_sets_session_cookies(client, test_db, make_user, user_password):
    user = await seed_user(test_db, make_user)

    response = await client.post(
        "/api/v1/users/login", json={"email": "ALICE@example.com", "password": user_password}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == user.id
    assert data["accessToken"] and data["refreshToken"]
    assert response.cookies["accessToken"] == data["accessToken"]
    assert response.cookies["refreshToken"] == data["refreshToken"]
    assert all("HttpOnly" in c for c in response.headers.get_list("set-cookie"))

    async with test_db() as db:
        stored = await crud.get_user_by_id(db, user.id)
        assert stored.refresh_token_enc is not None


@pytest.mark.asyncio
async def test_login_failures(client, test_db, make_user, user_password):
    await seed_user(test_db, make_user)

    wrong = await client.post(
        "/api/v1/users/login", json={"username": "alice", "password": "not-it"}
    )
    unknown = await client.post(
        "/api/v1/users/login", json={"username": "nobody", "password": user_password}
    )
    missing = await client.post("/api/v1/users/login", json={"password": user_password})

    assert wrong.status_code == 401
    assert unknown.status_code == 404
    assert missing.status_code == 400
    assert "accessToken" not in wrong.cookies


@pytest.mark.asyncio
async def test_refresh_rotation_rejects_previous_token(client, test_db, make_user, user_password):
    await seed_user(test_db, make_user)
    login = await client.post(
        "/api/v1/users/login", json={"username": "alice", "password": user_password}
    )
    first = login.json()["data"]["refreshToken"]

    # Login left the refresh cookie in the client jar
    rotated = await client.post("/api/v1/users/refresh-token")
    assert rotated.status_code == 200
    second = rotated.json()["data"]["refreshToken"]
    assert second != first

    client.cookies.clear()
    stale = await client.post("/api/v1/users/refresh-token", json={"refreshToken": first})
    assert stale.status_code == 401
    assert stale.json()["message"] == "Refresh token is expired or used"

    fresh = await client.post("/api/v1/users/refresh-token", json={"refreshToken": second})
    assert fresh.status_code == 200


@pytest.mark.asyncio
async def test_refresh_requires_a_token(client):
    response = await client.post("/api/v1/users/refresh-token")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_access_token_is_not_a_refresh_token(client, test_db, make_user, user_password):
    await seed_user(test_db, make_user)
    login = await client.post(
        "/api/v1/users/login", json={"username": "alice", "password": user_password}
    )
    access = login.json()["data"]["accessToken"]
    client.cookies.clear()

    response = await client.post("/api/v1/users/refresh-token", json={"refreshToken": access})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookies_and_stored_token(client, test_db, make_user, user_password):
    user = await seed_user(test_db, make_user)
    login = await client.post(
        "/api/v1/users/login", json={"username": "alice", "password": user_password}
    )
    refresh = login.json()["data"]["refreshToken"]

    response = await client.post("/api/v1/users/logout")

    assert response.status_code == 200
    cleared = response.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") and "Max-Age=0" in c for c in cleared)
    assert any(c.startswith("refreshToken=") and "Max-Age=0" in c for c in cleared)

    async with test_db() as db:
        stored = await crud.get_user_by_id(db, user.id)
        assert stored.refresh_token_enc is None

    client.cookies.clear()
    again = await client.post("/api/v1/users/refresh-token", json={"refreshToken": refresh})
    assert again.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client, test_db, make_user, auth_headers, user_password):
    user = await seed_user(test_db, make_user)
    headers = auth_headers(user)

    bad = await client.patch(
        "/api/v1/users/change-password",
        json={"oldPassword": "wrong-one", "newPassword": "another1"},
        headers=headers,
    )
    assert bad.status_code == 400

    ok = await client.patch(
        "/api/v1/users/change-password",
        json={"oldPassword": user_password, "newPassword": "another1"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = await client.post(
        "/api/v1/users/login", json={"username": "alice", "password": "another1"}
    )
    assert login.status_code == 200
