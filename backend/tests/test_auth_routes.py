"""
Inkpress Backend — Auth Endpoint Tests
=======================================

What:  /api/auth/* over HTTP: envelopes, status codes and camelCase JSON.
"""

import pytest

REGISTER_BODY = {
    "username": "ada_l",
    "email": "ada@example.com",
    "password": "Analytic1",
    "firstName": "Ada",
    "lastName": "Lovelace",
}


class TestRegisterAndLogin:

    @pytest.mark.asyncio
    async def test_register_then_me_with_token(self, test_client):
        response = await test_client.post("/api/auth/register", json=REGISTER_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["firstName"] == "Ada"
        assert "passwordHash" not in body["data"]["user"]

        token = body["data"]["token"]
        me = await test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["username"] == "ada_l"

    @pytest.mark.asyncio
    async def test_register_duplicate_email_conflict(self, test_client):
        await test_client.post("/api/auth/register", json=REGISTER_BODY)

        response = await test_client.post(
            "/api/auth/register", json={**REGISTER_BODY, "username": "another"}
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "User with this email already exists"
        assert "requestId" in body

    @pytest.mark.asyncio
    async def test_register_weak_password_lists_field_error(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={**REGISTER_BODY, "password": "alllowercase"}
        )

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert errors[0]["field"] == "password"
        assert "uppercase" in errors[0]["message"]

    @pytest.mark.asyncio
    async def test_register_missing_field(self, test_client):
        body = {k: v for k, v in REGISTER_BODY.items() if k != "lastName"}

        response = await test_client.post("/api/auth/register", json=body)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "lastName"

    @pytest.mark.asyncio
    async def test_login_success_and_failure(self, test_client, user_factory):
        await user_factory(email="grace@example.com")

        ok = await test_client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": "Secret123"}
        )
        assert ok.status_code == 200
        assert ok.json()["data"]["token"]

        bad = await test_client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": "Wrong1234"}
        )
        assert bad.status_code == 401
        assert bad.json()["error"] == "Invalid credentials"


class TestAuthenticatedAccount:

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized, no token"

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_update_profile(self, test_client, user_factory, auth_headers):
        user = await user_factory()

        response = await test_client.put(
            "/api/auth/profile",
            json={"bio": "Hello there", "firstName": "Grace"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["bio"] == "Hello there"
        assert data["firstName"] == "Grace"

    @pytest.mark.asyncio
    async def test_change_password_then_login_with_new_one(
        self, test_client, user_factory, auth_headers
    ):
        user = await user_factory(email="pw@example.com")

        response = await test_client.put(
            "/api/auth/password",
            json={"currentPassword": "Secret123", "newPassword": "Fresh456"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password updated successfully"

        login = await test_client.post(
            "/api/auth/login", json={"email": "pw@example.com", "password": "Fresh456"}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_request_id_header_echoed(self, test_client):
        response = await test_client.get("/api/auth/me", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["requestId"] == "trace-42"
