"""Auth endpoint tests: register, login, profile, refresh rotation, logout."""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import select

from recite.auth.jwt import create_access_token
from recite.db.models import RefreshToken, User
from tests.conftest import TEST_PASSWORD, bearer, create_user

REGISTER_BODY = {
    "email": "New.User@Example.com",
    "password": TEST_PASSWORD,
    "name": "New User",
    "level": "intermediate",
    "class_id": "class-a",
}


async def _register(client: AsyncClient, **overrides: object) -> dict:
    response = await client.post("/api/auth/register", json={**REGISTER_BODY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestRegister:
    async def test_register_returns_user_and_credentials(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json=REGISTER_BODY)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully"
        user = body["data"]["user"]
        assert user["email"] == "new.user@example.com"
        assert user["role"] == "student"
        assert user["level"] == "intermediate"
        assert user["class_id"] == "class-a"
        assert "password" not in user
        assert "password_hash" not in user
        assert body["data"]["access_token"]
        assert body["data"]["refresh_token"]
        assert body["data"]["token_type"] == "bearer"

    async def test_duplicate_email_is_conflict(self, client: AsyncClient):
        await _register(client)
        response = await client.post("/api/auth/register", json={**REGISTER_BODY, "email": "new.user@EXAMPLE.com"})
        assert response.status_code == 409
        assert response.json()["success"] is False

    async def test_invalid_body_lists_field_errors(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={**REGISTER_BODY, "email": "not-an-email"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid data"
        assert any(err["field"] == "email" for err in body["errors"])

    async def test_weak_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={**REGISTER_BODY, "password": "weakpassword"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "password"

    async def test_admin_self_registration_forbidden(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={**REGISTER_BODY, "role": "admin"})
        assert response.status_code == 403

    async def test_teacher_registration_drops_class(self, client: AsyncClient):
        data = await _register(client, role="teacher")
        assert data["user"]["role"] == "teacher"
        assert data["user"]["class_id"] is None


class TestLogin:
    async def test_register_then_login(self, client: AsyncClient):
        await _register(client)
        response = await client.post(
            "/api/auth/login", json={"email": "new.user@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "new.user@example.com"
        assert data["user"]["last_login"] is not None
        assert "password_hash" not in data["user"]

    async def test_wrong_password(self, client: AsyncClient):
        await _register(client)
        response = await client.post(
            "/api/auth/login", json={"email": "new.user@example.com", "password": "WrongPass1"}
        )
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["errors"] == [{"field": "authorization", "message": "invalid_credentials"}]

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert response.status_code == 401

    async def test_deactivated_account(self, client: AsyncClient, db_session):
        await create_user(db_session, email="gone@example.com", is_active=False)
        response = await client.post("/api/auth/login", json={"email": "gone@example.com", "password": TEST_PASSWORD})
        assert response.status_code == 401
        assert response.json()["errors"][0]["message"] == "deactivated"


class TestProfile:
    async def test_requires_credential(self, client: AsyncClient):
        response = await client.get("/api/auth/profile")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["errors"][0]["message"] == "missing"

    async def test_expired_credential_message(self, client: AsyncClient, student: User, settings):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = create_access_token(student.id, student.email, student.role, settings, now=past)
        response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert "expired" in response.json()["message"]

    async def test_deactivated_principal_rejected(self, client: AsyncClient, db_session, settings):
        user = await create_user(db_session, email="inactive@example.com", is_active=False)
        response = await client.get("/api/auth/profile", headers=bearer(user, settings))
        assert response.status_code == 401

    async def test_get_and_update_profile(self, client: AsyncClient, student: User, settings):
        headers = bearer(student, settings)
        response = await client.get("/api/auth/profile", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == student.id

        response = await client.put(
            "/api/auth/profile", headers=headers, json={"name": "Alice Reader", "level": "advanced"}
        )
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["name"] == "Alice Reader"
        assert user["level"] == "advanced"


class TestRefreshAndLogout:
    async def test_refresh_rotates_pair(self, client: AsyncClient):
        data = await _register(client)
        response = await client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert response.status_code == 200
        rotated = response.json()["data"]
        assert rotated["refresh_token"] != data["refresh_token"]

        profile = await client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {rotated['access_token']}"}
        )
        assert profile.status_code == 200

    async def test_reused_refresh_token_revokes_all(self, client: AsyncClient, db_session):
        data = await _register(client)
        first = await client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        rotated = first.json()["data"]["refresh_token"]

        reuse = await client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert reuse.status_code == 401
        assert reuse.json()["errors"][0]["message"] == "revoked"

        after = await client.post("/api/auth/refresh-token", json={"refresh_token": rotated})
        assert after.status_code == 401

        result = await db_session.execute(select(RefreshToken).where(RefreshToken.is_revoked.is_(False)))
        assert result.scalars().all() == []

    async def test_access_token_is_not_a_refresh_token(self, client: AsyncClient):
        data = await _register(client)
        response = await client.post("/api/auth/refresh-token", json={"refresh_token": data["access_token"]})
        assert response.status_code == 401

    async def test_logout_revokes_refresh_token(self, client: AsyncClient):
        data = await _register(client)
        headers = {"Authorization": f"Bearer {data['access_token']}"}
        response = await client.post(
            "/api/auth/logout", headers=headers, json={"refresh_token": data["refresh_token"]}
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logout successful", "data": None}

        refresh = await client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert refresh.status_code == 401

    async def test_logout_all(self, client: AsyncClient):
        data = await _register(client)
        await client.post(
            "/api/auth/login", json={"email": "new.user@example.com", "password": TEST_PASSWORD}
        )
        headers = {"Authorization": f"Bearer {data['access_token']}"}
        response = await client.post("/api/auth/logout-all", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["revoked_count"] == 2
