"""
Tests for authentication endpoints.
"""
from datetime import timedelta

from headshots.auth import create_access_token, create_refresh_token


class TestAuthEndpoints:
    """Test auth endpoints."""

    def test_register_user(self, client):
        """Test user registration."""
        response = client.post(
            "/api/auth/register",
            json={
                "email": "newuser@example.com",
                "password": "securepassword123",
                "display_name": "New User",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["display_name"] == "New User"
        assert "id" in data

    def test_register_defaults_display_name(self, client):
        """Display name falls back to the email's local part."""
        response = client.post(
            "/api/auth/register",
            json={"email": "jane@example.com", "password": "securepassword123"},
        )
        assert response.status_code == 200
        assert response.json()["display_name"] == "jane"

    def test_register_duplicate_email(self, client, test_user):
        """Test registration with existing email fails."""
        response = client.post(
            "/api/auth/register",
            json={
                "email": "test@example.com",
                "password": "anotherpassword",
                "display_name": "Another User",
            },
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "CONFLICT"
        assert "already registered" in body["error"]

    def test_register_short_password(self, client):
        """Passwords under 8 characters are rejected."""
        response = client.post(
            "/api/auth/register",
            json={"email": "short@example.com", "password": "abc"},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_login_success(self, client, test_user):
        """Test successful login."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "test@example.com",
                "password": "testpassword123",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    def test_login_form(self, client, test_user):
        """OAuth2 form login uses the email as username."""
        response = client.post(
            "/api/auth/login",
            data={"username": "test@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 200
        assert "access_token" in response.json()

    def test_login_wrong_password(self, client, test_user):
        """Test login with wrong password fails."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "test@example.com",
                "password": "wrongpassword",
            },
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_login_nonexistent_user(self, client):
        """Test login with non-existent user fails."""
        response = client.post(
            "/api/auth/login/json",
            json={
                "email": "nobody@example.com",
                "password": "anypassword",
            },
        )
        assert response.status_code == 401

    def test_login_inactive_user(self, client, db, test_user):
        """Deactivated accounts cannot log in."""
        test_user.is_active = False
        db.commit()

        response = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 401

    def test_get_current_user(self, client, test_user):
        """Test getting current user info."""
        login_response = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        token = login_response.json()["access_token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == test_user.email
        assert data["id"] == test_user.id

    def test_get_current_user_unauthenticated(self, client):
        """Test getting current user without auth fails."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_get_current_user_invalid_token(self, client):
        """Garbage tokens are treated as unauthenticated."""
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token_rejected(self, client, test_user):
        """Expired access tokens are rejected."""
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-1))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token_not_accepted_as_access(self, client, test_user):
        """A refresh token cannot be used on authenticated routes."""
        token = create_refresh_token({"sub": str(test_user.id)})
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token(self, client, test_user):
        """Test token refresh."""
        login_response = client.post(
            "/api/auth/login/json",
            json={
                "email": "test@example.com",
                "password": "testpassword123",
            },
        )
        refresh_token = login_response.json()["refresh_token"]

        response = client.post(
            "/api/auth/refresh",
            json={"refresh_token": refresh_token},
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data

    def test_refresh_with_access_token_fails(self, client, auth_token):
        """Access tokens cannot be exchanged for new tokens."""
        response = client.post("/api/auth/refresh", json={"refresh_token": auth_token})
        assert response.status_code == 401


class TestHealth:
    """Test the health endpoint."""

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["data"]["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
