"""
Tests for admin and customer authentication endpoints
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from tests.helpers import TEST_ADMIN_PASSWORD, with_csrf


def admin_login(client, username="admin", password=TEST_ADMIN_PASSWORD):
    return client.post(
        "/api/admin/auth/login",
        json={"username": username, "password": password},
        headers=with_csrf(client, {}),
    )


def register(client, **overrides):
    payload = {
        "name": "Jordan Lee",
        "email": "Jordan@Example.com",
        "password": "correct-horse",
        "company": "Acme Automation",
    }
    payload.update(overrides)
    return client.post("/api/users/register", json=payload, headers=with_csrf(client, {}))


def request_reset(client, email="jordan@example.com"):
    return client.post("/api/users/password/reset-request", json={"email": email}, headers=with_csrf(client, {}))


def reset_password(client, token, password="battery-staple"):
    return client.post(
        "/api/users/password/reset",
        json={"token": token, "password": password},
        headers=with_csrf(client, {}),
    )


def login(client, password):
    return client.post(
        "/api/users/login",
        json={"email": "jordan@example.com", "password": password},
        headers=with_csrf(client, {}),
    )


def issued_tokens(*tokens):
    """Make the account token service hand out these values, in order."""
    return patch("app.services.user_tokens.generate_token", side_effect=list(tokens))


RESET_TOKEN = "a1" * 32
VERIFY_TOKEN = "b2" * 32


class TestAdminAuth:
    def test_wrong_password(self, client):
        response = admin_login(client, password="nope")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_unknown_admin(self, client):
        assert admin_login(client, username="ghost").status_code == 401

    def test_default_admin_login_sets_cookie(self, client):
        response = admin_login(client, username="ADMIN")

        assert response.status_code == 200
        assert response.json() == {
            "message": "Login successful",
            "admin": {"username": "admin", "role": "superadmin"},
        }
        assert "admin_token" in response.cookies

        verify = client.get("/api/admin/auth/verify")
        assert verify.json() == {"valid": True, "username": "admin", "role": "superadmin"}

    def test_verify_requires_admin(self, client, customer_headers):
        assert client.get("/api/admin/auth/verify").status_code == 401

        response = client.get("/api/admin/auth/verify", headers=customer_headers)
        assert response.status_code == 403

    def test_logout(self, client):
        admin_login(client)
        # The cookie moved the caller to the admin's session
        headers = with_csrf(client, {})

        response = client.post("/api/admin/auth/logout", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert client.get("/api/admin/auth/verify").status_code == 401

    def test_login_attempts_are_rate_limited(self, client):
        for _ in range(5):
            assert admin_login(client, password="guess").status_code == 401

        response = admin_login(client, password="guess")

        assert response.status_code == 429
        assert "Retry-After" in response.headers


class TestCustomerAccounts:
    def test_register(self, client):
        response = register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registration successful"
        assert body["user"]["email"] == "jordan@example.com"
        assert body["user"]["role"] == "customer"
        assert "password" not in body["user"]
        assert "user_token" in response.cookies

        me = client.get("/api/users/me")
        assert me.status_code == 200
        assert me.json()["company"] == "Acme Automation"

    def test_short_password(self, client):
        response = register(client, password="short")

        assert response.status_code == 400
        assert [d["field"] for d in response.json()["details"]] == ["password"]

    @pytest.mark.parametrize("password", ["x" * 100, "\u00e9" * 40])
    def test_password_longer_than_72_bytes(self, client, password):
        response = register(client, password=password)

        assert response.status_code == 400
        details = response.json()["details"]
        assert [d["field"] for d in details] == ["password"]
        assert details[0]["message"] == "Password must be at most 72 bytes"

    def test_duplicate_email(self, client):
        register(client)
        client.cookies.clear()

        response = register(client, email="jordan@example.com")

        assert response.status_code == 400
        assert response.json() == {"error": "Email already registered"}

    def test_login(self, client):
        register(client)
        client.cookies.clear()

        response = client.post(
            "/api/users/login",
            json={"email": "JORDAN@example.com", "password": "correct-horse"},
            headers=with_csrf(client, {}),
        )

        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Jordan Lee"
        assert "user_token" in response.cookies

    def test_login_with_wrong_password(self, client):
        register(client)
        client.cookies.clear()

        response = client.post(
            "/api/users/login",
            json={"email": "jordan@example.com", "password": "wrong-horse"},
            headers=with_csrf(client, {}),
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}

    def test_me_requires_customer(self, client, admin_headers):
        assert client.get("/api/users/me").status_code == 401
        assert client.get("/api/users/me", headers=admin_headers).status_code == 403

    def test_logout(self, client):
        register(client)

        response = client.post("/api/users/logout", headers=with_csrf(client, {}))

        assert response.status_code == 200
        assert client.get("/api/users/me").status_code == 401


class TestPasswordReset:
    def test_same_answer_for_unknown_email(self, client):
        register(client)
        client.cookies.clear()

        known = request_reset(client)
        unknown = request_reset(client, email="nobody@example.com")

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {
            "message": "If an account exists with this email, a password reset link has been sent.",
        }

    def test_reset_replaces_password(self, client):
        register(client)
        client.cookies.clear()
        with issued_tokens(RESET_TOKEN):
            request_reset(client, email="Jordan@Example.com")

        response = reset_password(client, RESET_TOKEN)

        assert response.status_code == 200
        assert response.json() == {"message": "Password has been reset successfully"}
        assert login(client, "correct-horse").status_code == 401
        assert login(client, "battery-staple").status_code == 200

    def test_token_is_single_use(self, client):
        register(client)
        client.cookies.clear()
        with issued_tokens(RESET_TOKEN):
            request_reset(client)

        assert reset_password(client, RESET_TOKEN).status_code == 200
        second = reset_password(client, RESET_TOKEN, password="another-secret")

        assert second.status_code == 400
        assert second.json() == {"error": "Invalid or expired reset token"}

    def test_newer_request_retires_older_token(self, client):
        register(client)
        client.cookies.clear()
        with issued_tokens("01" * 32, "02" * 32):
            request_reset(client)
            request_reset(client)

        assert reset_password(client, "01" * 32).status_code == 400
        assert reset_password(client, "02" * 32).status_code == 200

    def test_expired_token(self, client):
        register(client)
        client.cookies.clear()
        with issued_tokens(RESET_TOKEN):
            request_reset(client)

        later = datetime.now(timezone.utc) + timedelta(hours=2)
        with patch("app.services.user_tokens._now", return_value=later):
            response = reset_password(client, RESET_TOKEN)

        assert response.status_code == 400
        assert login(client, "correct-horse").status_code == 200

    def test_verification_token_cannot_reset_password(self, client):
        with issued_tokens(VERIFY_TOKEN):
            register(client)
        client.cookies.clear()

        assert reset_password(client, VERIFY_TOKEN).status_code == 400

    def test_new_password_is_validated(self, client):
        register(client)
        client.cookies.clear()
        with issued_tokens(RESET_TOKEN):
            request_reset(client)

        response = reset_password(client, RESET_TOKEN, password="x" * 100)

        assert response.status_code == 400
        assert [d["field"] for d in response.json()["details"]] == ["password"]
        # A rejected body does not spend the token
        assert reset_password(client, RESET_TOKEN).status_code == 200


class TestEmailVerification:
    def test_registration_issues_verification_token(self, client):
        with issued_tokens(VERIFY_TOKEN):
            body = register(client).json()
        assert body["user"]["emailVerified"] is False

        response = client.get("/api/users/verify-email", params={"token": VERIFY_TOKEN})

        assert response.status_code == 200
        assert response.json() == {"message": "Email verified successfully", "verified": True}
        assert client.get("/api/users/me").json()["emailVerified"] is True

    def test_token_is_single_use(self, client):
        with issued_tokens(VERIFY_TOKEN):
            register(client)
        client.get("/api/users/verify-email", params={"token": VERIFY_TOKEN})

        response = client.get("/api/users/verify-email", params={"token": VERIFY_TOKEN})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired verification token"}

    def test_missing_token(self, client):
        response = client.get("/api/users/verify-email")

        assert response.status_code == 400
        assert response.json() == {"error": "Verification token is required"}

    def test_resend_replaces_token(self, client):
        with issued_tokens(VERIFY_TOKEN):
            register(client)
        client.cookies.clear()

        with issued_tokens("c3" * 32):
            response = client.post(
                "/api/users/verify-email/resend",
                json={"email": "jordan@example.com"},
                headers=with_csrf(client, {}),
            )

        assert response.json() == {
            "message": "If an account exists with this email, a verification link has been sent.",
        }
        assert client.get("/api/users/verify-email", params={"token": VERIFY_TOKEN}).status_code == 400
        assert client.get("/api/users/verify-email", params={"token": "c3" * 32}).status_code == 200

    def test_no_token_for_verified_account(self, client):
        with issued_tokens(VERIFY_TOKEN):
            register(client)
        client.get("/api/users/verify-email", params={"token": VERIFY_TOKEN})
        client.cookies.clear()

        with patch("app.routers.users.issue_token", new_callable=AsyncMock) as issue:
            response = client.post(
                "/api/users/verify-email/resend",
                json={"email": "jordan@example.com"},
                headers=with_csrf(client, {}),
            )

        assert response.status_code == 200
        issue.assert_not_awaited()


class TestTokenCleanup:
    def test_superadmin_runs_cleanup(self, client, admin_headers):
        response = client.post("/api/admin/cleanup-tokens", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "message": "Expired tokens cleaned up",
            "csrfTokensRemoved": 0,
            "idempotencyKeysRemoved": 0,
            "accountTokensRemoved": 0,
        }

    def test_regular_admin_is_refused(self, client, editor_headers):
        response = client.post("/api/admin/cleanup-tokens", headers=editor_headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Superadmin access required"}
