"""
API Tests for authentication
Tests for: captcha, login, lockout, refresh, password reset
"""
import pytest
from httpx import AsyncClient

from app.models import UserRole
from conftest import TEST_PASSWORD, auth_headers, captcha_fields


async def _login(client: AsyncClient, email: str, password: str = TEST_PASSWORD, **captcha):
    body = {"email": email, "password": password, **(captcha or captcha_fields())}
    return await client.post("/api/auth/login", json=body)


class TestCaptcha:

    @pytest.mark.asyncio
    async def test_get_captcha_not_cached(self, client: AsyncClient):
        response = await client.get("/api/auth/captcha")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"question", "hash", "expiresAt"}
        assert "no-store" in response.headers["cache-control"]
        assert response.headers["pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_verify_captcha(self, client: AsyncClient):
        response = await client.post("/api/auth/captcha/verify", json=captcha_fields("4"))

        assert response.json() == {"valid": True}

    @pytest.mark.asyncio
    async def test_verify_wrong_answer(self, client: AsyncClient):
        fields = captcha_fields("4")
        fields["captchaAnswer"] = "5"

        response = await client.post("/api/auth/captcha/verify", json=fields)

        assert response.json() == {"valid": False}

    @pytest.mark.asyncio
    async def test_verify_expired_captcha(self, client: AsyncClient):
        response = await client.post("/api/auth/captcha/verify", json=captcha_fields("4", expires_in_ms=-1_000))

        assert response.status_code == 200
        assert response.json() == {"valid": False}


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, college_admin):
        response = await _login(client, college_admin.email)

        assert response.status_code == 200
        data = response.json()
        assert data["tokenType"] == "bearer"
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["user"]["role"] == "COLLEGE_SUPER_ADMIN"
        assert data["user"]["collegeId"] == college_admin.college_id

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, client: AsyncClient, sbte_admin):
        response = await _login(client, sbte_admin.email.upper())

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_bad_captcha(self, client: AsyncClient, sbte_admin):
        fields = captcha_fields("7")
        fields["captchaAnswer"] = "8"

        response = await _login(client, sbte_admin.email, **fields)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired captcha"

    @pytest.mark.asyncio
    async def test_expired_captcha(self, client: AsyncClient, sbte_admin):
        response = await _login(client, sbte_admin.email, **captcha_fields(expires_in_ms=-1000))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await _login(client, "nobody@nowhere.in")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, sbte_admin):
        response = await _login(client, sbte_admin.email, "Wr0ng!Password")

        assert response.status_code == 401
        assert sbte_admin.failed_login_attempts == 1

    @pytest.mark.asyncio
    async def test_inactive_account(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.SBTE_ADMIN, is_active=False)

        response = await _login(client, user.email)

        assert response.status_code == 403
        assert response.json()["message"] == "Account is inactive"

    @pytest.mark.asyncio
    async def test_unverified_alumnus(self, client: AsyncClient, make_user, college):
        user = await make_user(UserRole.ALUMNUS, college_id=college.id, is_verified=False)

        response = await _login(client, user.email)

        assert response.status_code == 403
        assert "pending verification" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_lockout_after_five_failures(self, client: AsyncClient, sbte_admin):
        for _ in range(4):
            response = await _login(client, sbte_admin.email, "Wr0ng!Password")
            assert response.status_code == 401

        response = await _login(client, sbte_admin.email, "Wr0ng!Password")
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_LOCKED"
        assert response.json()["details"]["remainingTime"] == 30

        # correct password is refused while locked
        response = await _login(client, sbte_admin.email)
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_LOCKED"

    @pytest.mark.asyncio
    async def test_success_resets_failed_attempts(self, client: AsyncClient, sbte_admin):
        await _login(client, sbte_admin.email, "Wr0ng!Password")
        await _login(client, sbte_admin.email)

        assert sbte_admin.failed_login_attempts == 0
        assert sbte_admin.last_login is not None


class TestLockStatus:

    @pytest.mark.asyncio
    async def test_unknown_email_reports_unlocked(self, client: AsyncClient):
        response = await client.post("/api/auth/check-lock-status", json={"email": "ghost@nowhere.in"})

        assert response.status_code == 200
        assert response.json()["isLocked"] is False
        assert response.json()["maxAttempts"] == 5

    @pytest.mark.asyncio
    async def test_counts_failures(self, client: AsyncClient, sbte_admin):
        await _login(client, sbte_admin.email, "Wr0ng!Password")
        await _login(client, sbte_admin.email, "Wr0ng!Password")

        response = await client.post("/api/auth/check-lock-status", json={"email": sbte_admin.email})

        assert response.json()["failedAttempts"] == 2
        assert response.json()["isLocked"] is False


class TestTokens:

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, finance_manager):
        response = await client.get("/api/auth/me", headers=auth_headers(finance_manager))

        assert response.status_code == 200
        assert response.json()["email"] == finance_manager.email

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")

        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, sbte_admin):
        login = (await _login(client, sbte_admin.email)).json()

        response = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})

        assert response.status_code == 200
        assert response.json()["accessToken"]

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, client: AsyncClient, sbte_admin):
        login = (await _login(client, sbte_admin.email)).json()

        response = await client.post("/api/auth/refresh", json={"refreshToken": login["accessToken"]})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid token type", "code": "AUTH_FAILED"}

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_refresh(self, client: AsyncClient, db_session, sbte_admin):
        login = (await _login(client, sbte_admin.email)).json()
        sbte_admin.is_active = False
        await db_session.commit()

        response = await client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})

        assert response.status_code == 401
        assert response.json() == {"message": "User not found or inactive", "code": "AUTH_FAILED"}

    @pytest.mark.asyncio
    async def test_validate_password(self, client: AsyncClient):
        response = await client.post("/api/auth/validate-password", json={"password": "weak"})

        assert response.json()["isValid"] is False
        assert response.json()["errors"]


class TestPasswordReset:

    @pytest.mark.asyncio
    async def test_unknown_email_gets_generic_message(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/password-reset/initiate",
            json={"email": "ghost@nowhere.in", **captcha_fields()},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "If an account exists for this email, an OTP has been sent."

    @pytest.mark.asyncio
    async def test_full_reset_flow_unlocks_account(self, client: AsyncClient, sbte_admin):
        for _ in range(5):
            await _login(client, sbte_admin.email, "Wr0ng!Password")
        assert sbte_admin.is_locked is True

        response = await client.post(
            "/api/auth/password-reset/initiate",
            json={"email": sbte_admin.email, **captcha_fields()},
        )
        assert response.status_code == 200
        otp = sbte_admin.otp
        assert otp and len(otp) == 6

        response = await client.post(
            "/api/auth/password-reset/verify-otp", json={"email": sbte_admin.email, "otp": otp}
        )
        assert response.json() == {"message": "OTP verified."}

        response = await client.post(
            "/api/auth/password-reset/reset",
            json={"email": sbte_admin.email, "otp": otp, "newPassword": "N3w!Passw0rd"},
        )
        assert response.status_code == 200
        assert sbte_admin.otp is None

        response = await _login(client, sbte_admin.email, "N3w!Passw0rd")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_weak_new_password_rejected(self, client: AsyncClient, sbte_admin):
        await client.post(
            "/api/auth/password-reset/initiate",
            json={"email": sbte_admin.email, **captcha_fields()},
        )

        response = await client.post(
            "/api/auth/password-reset/reset",
            json={"email": sbte_admin.email, "otp": sbte_admin.otp, "newPassword": "weakpass"},
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "newPassword"

    @pytest.mark.asyncio
    async def test_wrong_otp(self, client: AsyncClient, sbte_admin):
        await client.post(
            "/api/auth/password-reset/initiate",
            json={"email": sbte_admin.email, **captcha_fields()},
        )
        wrong = "000000" if sbte_admin.otp != "000000" else "111111"

        response = await client.post(
            "/api/auth/password-reset/verify-otp", json={"email": sbte_admin.email, "otp": wrong}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid OTP."

    @pytest.mark.asyncio
    async def test_fourth_request_in_hour_throttled(self, client: AsyncClient, sbte_admin):
        for _ in range(3):
            response = await client.post(
                "/api/auth/password-reset/initiate",
                json={"email": sbte_admin.email, **captcha_fields()},
            )
            assert response.status_code == 200

        response = await client.post(
            "/api/auth/password-reset/initiate",
            json={"email": sbte_admin.email, **captcha_fields()},
        )

        assert response.status_code == 429
        assert response.json()["code"] == "TOO_MANY_REQUESTS"
