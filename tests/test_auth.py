"""Tests for authentication endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token
from app.models.user import User
from tests.conftest import PASSWORD, auth_header


class TestLogin:
    """Tests for login endpoints."""

    async def test_login_success(self, client: AsyncClient, admin: User):
        """Test successful login."""
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@example.com", "password": PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    async def test_login_records_last_login(
        self, client: AsyncClient, db: AsyncSession, admin: User
    ):
        assert admin.last_login_at is None

        await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@example.com", "password": PASSWORD},
        )

        await db.refresh(admin)
        assert admin.last_login_at is not None

    async def test_login_wrong_password(self, client: AsyncClient, admin: User):
        """Test login with wrong password."""
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@example.com", "password": "wrongpassword"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    async def test_login_nonexistent_user(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "ghost@example.com", "password": PASSWORD},
        )

        assert response.status_code == 401

    async def test_login_invalid_email_format(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "not-an-email", "password": PASSWORD},
        )

        assert response.status_code == 422

    async def test_login_normalizes_email(self, client: AsyncClient, admin: User):
        """Test that login lowercases the email."""
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "  Admin@Example.COM ", "password": PASSWORD},
        )

        assert response.status_code == 200

    async def test_login_inactive_user(self, client: AsyncClient, db: AsyncSession, admin: User):
        admin.is_active = False
        await db.commit()

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@example.com", "password": PASSWORD},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Inactive user"

    async def test_login_form(self, client: AsyncClient, admin: User):
        """Test OAuth2 form login used by the docs UI."""
        response = await client.post(
            "/api/v1/auth/login/form",
            data={"username": "admin@example.com", "password": PASSWORD},
        )

        assert response.status_code == 200
        assert "access_token" in response.json()


class TestRefresh:
    """Tests for token refresh endpoint."""

    async def test_refresh_success(self, client: AsyncClient, admin: User):
        login_response = await client.post(
            "/api/v1/auth/login",
            json={"email": "admin@example.com", "password": PASSWORD},
        )
        refresh_token = login_response.json()["refresh_token"]

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token},
        )

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data

    async def test_refresh_invalid_token(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": "invalid-token"},
        )

        assert response.status_code == 401

    async def test_refresh_with_access_token(self, client: AsyncClient, admin_token: str):
        """Test that access token cannot be used for refresh."""
        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": admin_token},
        )

        assert response.status_code == 401
        assert "Invalid refresh token" in response.json()["detail"]


class TestCurrentUser:
    async def test_me(self, client: AsyncClient, parent_token: str, parent: User):
        response = await client.get("/api/v1/auth/me", headers=auth_header(parent_token))

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "parent@example.com"
        assert data["role"] == "parent"
        assert data["family_id"] == str(parent.family_id)

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_me_with_token_of_unknown_user(self, client: AsyncClient):
        token = create_access_token(data={"sub": "00000000-0000-0000-0000-000000000000"})

        response = await client.get("/api/v1/auth/me", headers=auth_header(token))

        assert response.status_code == 401
