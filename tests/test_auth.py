"""Login, registration, verification, password reset, and logout flows."""

import logging

from shopfront.models import UserModel
from shopfront.testing import assert_page_contains, assert_redirects_to

PASSWORD = "Secret123!"


def registration(email: str = "ada@example.com", **overrides: str) -> dict[str, str]:
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": email,
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
        **overrides,
    }


class TestLogin:
    async def test_login_page(self, client) -> None:
        response = await client.get("/login")
        assert_page_contains(response, 'name="_csrf_token"')
        assert "Login" in response.text

    async def test_successful_login(self, client, make_user, login) -> None:
        await make_user()
        response = await login()
        assert_redirects_to(response, "/dashboard")
        dashboard = await client.get("/dashboard")
        assert_page_contains(dashboard, "Welcome back, Ada!")

    async def test_login_by_username(self, client, make_user, login) -> None:
        await make_user()
        assert_redirects_to(await login("ada"), "/dashboard")

    async def test_missing_fields(self, client, login) -> None:
        response = await login("", "")
        assert_redirects_to(response, "/login")
        assert_page_contains(await client.get("/login"), "Email and password are required")

    async def test_wrong_password_keeps_email(self, client, make_user, login) -> None:
        await make_user()
        response = await login(password="Wrong123!")
        assert_redirects_to(response, "/login")
        page = await client.get("/login")
        assert_page_contains(page, "Invalid email or password")
        assert 'value="ada@example.com"' in page.text

    async def test_unverified_account(self, client, make_user, login) -> None:
        await make_user(verified=False)
        response = await login()
        assert_redirects_to(response, "/verify-email?email=ada%40example.com")
        page = await client.get("/verify-email?email=ada%40example.com")
        assert_page_contains(page, "Please verify your email address before logging in.")
        assert (await client.get("/dashboard")).status == 302

    async def test_inactive_account(self, client, app, make_user, login) -> None:
        user_id = await make_user()
        await UserModel(app.db).set_status(user_id, "banned")
        assert_redirects_to(await login(), "/login")
        assert_page_contains(await client.get("/login"), "Your account is not active")

    async def test_lockout_after_repeated_failures(self, client, make_user, login) -> None:
        await make_user()
        for _ in range(5):
            await login(password="Wrong123!")
        response = await login()
        assert_redirects_to(response, "/login")
        assert_page_contains(
            await client.get("/login"), "Too many login attempts. Please try again later."
        )

    async def test_lockout_is_per_email(self, client, make_user, login) -> None:
        await make_user()
        await make_user("grace@example.com", first_name="Grace")
        for _ in range(5):
            await login(password="Wrong123!")
        assert_redirects_to(await login("grace@example.com"), "/dashboard")

    async def test_authenticated_user_skips_login(self, client, member) -> None:
        assert_redirects_to(await client.get("/login"), "/dashboard")
        assert_redirects_to(await client.get("/register"), "/dashboard")

    async def test_login_returns_to_intended_page(self, client, make_user, login) -> None:
        await make_user()
        response = await client.get("/orders?status=pending")
        assert_redirects_to(response, "/login")
        assert_page_contains(await client.get("/login"), "Please log in to access this page")
        assert_redirects_to(await login(), "/orders?status=pending")

    async def test_session_id_rotates_on_login(self, client, make_user, login) -> None:
        await make_user()
        await client.get("/login")
        before = client.cookies["shopfront_session"]
        await login()
        assert client.cookies["shopfront_session"] != before


class TestRegistration:
    async def test_register_then_verify_then_login(self, client, app, login, caplog) -> None:
        token = await client.csrf_token("/register")
        with caplog.at_level(logging.INFO, logger="shopfront.auth"):
            response = await client.post(
                "/register", form={**registration(), "_csrf_token": token}
            )
        assert_redirects_to(response, "/verify-email?email=ada%40example.com")
        assert "Verification link for ada@example.com" in caplog.text

        user = await UserModel(app.db).get_by_email("ada@example.com")
        assert not user.email_verified
        verification = await app.db.fetch_val(
            "SELECT email_verification_token FROM users WHERE id = ?", user.id
        )
        response = await client.get(f"/verify-email?token={verification}")
        assert_redirects_to(response, "/login")
        assert_page_contains(
            await client.get("/login"), "Email verified successfully! You can now log in."
        )
        assert_redirects_to(await login(), "/dashboard")

    async def test_password_mismatch(self, client) -> None:
        token = await client.csrf_token("/register")
        form = {**registration(password_confirmation="Other123!"), "_csrf_token": token}
        assert_redirects_to(await client.post("/register", form=form), "/register")
        page = await client.get("/register")
        assert_page_contains(page, "Passwords do not match")
        assert 'value="Ada"' in page.text
        assert PASSWORD not in page.text

    async def test_duplicate_email(self, client, make_user) -> None:
        await make_user()
        token = await client.csrf_token("/register")
        response = await client.post("/register", form={**registration(), "_csrf_token": token})
        assert_redirects_to(response, "/register")
        assert_page_contains(await client.get("/register"), "Email address is already registered")

    async def test_weak_password(self, client) -> None:
        token = await client.csrf_token("/register")
        form = {**registration(password="weak", password_confirmation="weak"), "_csrf_token": token}
        assert_redirects_to(await client.post("/register", form=form), "/register")
        assert_page_contains(await client.get("/register"), "Please fix the validation errors")

    async def test_bad_verification_token(self, client) -> None:
        assert_redirects_to(await client.get("/verify-email?token=nope"), "/login")
        assert_page_contains(await client.get("/login"), "Invalid or expired verification token")

    async def test_resend_verification(self, client, make_user, caplog) -> None:
        await make_user(verified=False)
        token = await client.csrf_token("/login")
        with caplog.at_level(logging.INFO, logger="shopfront.auth"):
            response = await client.post(
                "/resend-verification", form={"email": "ada@example.com", "_csrf_token": token}
            )
        assert_redirects_to(response, "/verify-email?email=ada%40example.com")
        assert "Verification link for ada@example.com" in caplog.text


class TestPasswordReset:
    async def test_forgot_password_does_not_reveal_accounts(self, client, caplog) -> None:
        token = await client.csrf_token("/forgot-password")
        with caplog.at_level(logging.INFO, logger="shopfront.auth"):
            response = await client.post(
                "/forgot-password", form={"email": "ghost@example.com", "_csrf_token": token}
            )
        assert_redirects_to(response, "/login")
        assert "Password reset link" not in caplog.text
        assert_page_contains(await client.get("/login"), "If an account with that email exists")

    async def test_forgot_password_logs_link(self, client, make_user, caplog) -> None:
        await make_user()
        token = await client.csrf_token("/forgot-password")
        with caplog.at_level(logging.INFO, logger="shopfront.auth"):
            await client.post(
                "/forgot-password", form={"email": "ada@example.com", "_csrf_token": token}
            )
        assert "Password reset link for ada@example.com" in caplog.text
        assert "/reset-password?token=" in caplog.text

    async def test_reset_flow(self, client, app, make_user, login) -> None:
        user_id = await make_user()
        reset = await UserModel(app.db).create_password_reset_token(user_id)

        page = await client.get(f"/reset-password?token={reset}")
        assert_page_contains(page, reset)
        csrf = await client.csrf_token(f"/reset-password?token={reset}")
        response = await client.post(
            "/reset-password",
            form={
                "token": reset,
                "password": "Newpass1!",
                "password_confirmation": "Newpass1!",
                "_csrf_token": csrf,
            },
        )
        assert_redirects_to(response, "/login")
        assert_redirects_to(await login(password="Newpass1!"), "/dashboard")

    async def test_reset_without_token(self, client) -> None:
        assert_redirects_to(await client.get("/reset-password"), "/forgot-password")

    async def test_reset_with_unknown_token(self, client) -> None:
        assert_redirects_to(await client.get("/reset-password?token=nope"), "/forgot-password")
        assert_page_contains(await client.get("/forgot-password"), "Invalid or expired reset token")

    async def test_reset_mismatch(self, client, app, make_user) -> None:
        user_id = await make_user()
        reset = await UserModel(app.db).create_password_reset_token(user_id)
        csrf = await client.csrf_token(f"/reset-password?token={reset}")
        response = await client.post(
            "/reset-password",
            form={
                "token": reset,
                "password": "Newpass1!",
                "password_confirmation": "Newpass2!",
                "_csrf_token": csrf,
            },
        )
        assert_redirects_to(response, f"/reset-password?token={reset}")


class TestLogout:
    async def test_logout_clears_session(self, client, member) -> None:
        token = await client.csrf_token("/profile")
        response = await client.post("/logout", form={"_csrf_token": token})
        assert_redirects_to(response, "/login")
        assert_page_contains(await client.get("/login"), "You have been logged out successfully")
        assert_redirects_to(await client.get("/dashboard"), "/login")

    async def test_logout_by_get(self, client, member) -> None:
        assert_redirects_to(await client.get("/logout"), "/login")
        assert_redirects_to(await client.get("/profile"), "/login")
