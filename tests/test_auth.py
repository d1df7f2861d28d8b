"""Auth service and API tests."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from fxrates.services.auth import (
    create_access_token,
    decode_token,
    hash_password,
    is_valid_email,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert verify_password("secret123", hashed)

    def test_wrong_password(self):
        hashed = hash_password("correct")
        assert not verify_password("wrong", hashed)

    def test_different_hashes(self):
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2  # bcrypt uses random salt


class TestJWT:
    def test_create_and_decode(self):
        token = create_access_token({"sub": "7", "email": "a@test.com", "ver": 2})
        payload = decode_token(token)
        assert payload["sub"] == "7"
        assert payload["ver"] == 2

    def test_token_has_expiry(self):
        token = create_access_token({"sub": "1"})
        payload = decode_token(token)
        assert "exp" in payload
        assert "iat" in payload

    def test_custom_expiry(self):
        token = create_access_token({"sub": "1"}, expires_delta=timedelta(minutes=5))
        payload = decode_token(token)
        assert payload["exp"] - payload["iat"] <= 300 + 1

    def test_expired_token_rejected(self):
        from fastapi import HTTPException
        token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401

    def test_invalid_token_raises(self):
        from fastapi import HTTPException
        with pytest.raises(HTTPException) as exc_info:
            decode_token("invalid.token.here")
        assert exc_info.value.status_code == 401


@pytest.mark.parametrize(
    "email,ok",
    [("bob@example.com", True), ("bob.example.com", False), ("a@b@c.com", False), ("a@b.c", False)],
)
def test_email_check(email, ok):
    assert is_valid_email(email) is ok


@pytest.mark.asyncio
async def test_register_and_login(client: AsyncClient):
    resp = await client.post(
        "/api/v1/auth/register", json={"email": " Bob@Example.com ", "password": "password123"}
    )
    assert resp.status_code == 201

    resp = await client.post(
        "/api/v1/auth/login", json={"email": "bob@example.com", "password": "password123"}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 1440 * 60

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "bob@example.com"


@pytest.mark.asyncio
async def test_register_duplicate(client: AsyncClient, user):
    resp = await client.post(
        "/api/v1/auth/register", json={"email": user.email, "password": "password123"}
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "registration_failed"


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient):
    resp = await client.post("/api/v1/auth/register", json={"email": "c@example.com", "password": "short"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "validation_error"


@pytest.mark.asyncio
async def test_register_bad_email(client: AsyncClient):
    resp = await client.post("/api/v1/auth/register", json={"email": "nope", "password": "password123"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "invalid email format"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, user):
    resp = await client.post("/api/v1/auth/login", json={"email": user.email, "password": "wrong-pass"})
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "login_failed"


@pytest.mark.asyncio
async def test_login_revokes_previous_token(client: AsyncClient, user, auth_headers):
    resp = await client.post("/api/v1/auth/login", json={"email": user.email, "password": "s3cret-pass"})
    assert resp.status_code == 200

    old = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert old.status_code == 401
    assert old.json()["detail"]["message"] == "token revoked"

    new_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
    assert (await client.get("/api/v1/auth/me", headers=new_headers)).status_code == 200


@pytest.mark.asyncio
async def test_logout_revokes_token(client: AsyncClient, auth_headers):
    resp = await client.post("/api/v1/auth/logout", headers=auth_headers)
    assert resp.status_code == 200
    assert (await client.get("/api/v1/auth/me", headers=auth_headers)).status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user(client: AsyncClient):
    token = create_access_token({"sub": "999", "ver": 0})
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"]["message"] == "user not found"
