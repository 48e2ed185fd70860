"""Authentication: login, registration, e-mail verification, password reset, logout.

E-mail delivery is outside this package. Verification and reset links
are written to the ``shopfront.auth`` log at INFO level instead.
"""

import logging
from urllib.parse import urlencode

from shopfront.controllers.base import AnyResponse, Controller
from shopfront.errors import ValidationFailed
from shopfront.http.response import Redirect
from shopfront.security import emit_security_event
from shopfront.validation import Validator

logger = logging.getLogger("shopfront.auth")

RESET_SENT_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _safe_next(url: object) -> str | None:
    """Accept only same-site absolute paths as post-login targets."""
    if isinstance(url, str) and url.startswith("/") and not url.startswith("//"):
        return url
    return None


class AuthController(Controller):
    __slots__ = ()

    layout = "auth"

    # -- Login --

    async def login(self) -> AnyResponse:
        if self.session.is_authenticated:
            return self.redirect("/dashboard")
        if self.ctx.method == "POST":
            return await self._process_login()
        old, _errors = self.recall_form()
        return self.render("auth/login", {"page_title": "Login", "email": old.get("email", "")})

    async def _process_login(self) -> AnyResponse:
        form = await self.form()
        email = (form.get("email") or "").strip()
        password = form.get("password") or ""
        if not email or not password:
            return self.back_to_form(
                "/login", "Email and password are required", old={"email": email}
            )

        lockout = self.services.lockout
        key = lockout.key_for(email)
        locked, retry_after = lockout.is_locked(key)
        if locked:
            emit_security_event("login_locked", request=self.request,
                                details={"email": email, "retry_after": retry_after})
            return self.back_to_form(
                "/login", "Too many login attempts. Please try again later.", old={"email": email}
            )

        user = await self.users.authenticate(email, password)
        if user is None:
            now_locked, _ = lockout.record_failure(key)
            emit_security_event("login_failed", request=self.request,
                                details={"email": email, "locked": now_locked})
            logger.info("Failed login for %s from %s", email, self.request.client_ip)
            return self.back_to_form("/login", "Invalid email or password", old={"email": email})

        if not user.is_active:
            message = "Your account is not active. Please contact support."
            return self.back_to_form("/login", message, old={"email": email})
        if not user.email_verified:
            self.flash("warning", "Please verify your email address before logging in.")
            return self.redirect("/verify-email?" + urlencode({"email": user.email}))

        lockout.record_success(key)
        intended = _safe_next(self.session.pop("intended_url"))
        self.session.login(user.id, name=user.full_name, email=user.email, role=user.role)
        await self.users.record_login(user.id)
        await self.log_activity("login", "User logged in", user_id=user.id)
        emit_security_event("login_succeeded", request=self.request, user_id=user.id)
        logger.info("User %d logged in", user.id)

        self.flash("success", f"Welcome back, {user.first_name}!")
        if intended is not None:
            # Already carries the mount prefix
            return Redirect(intended)
        return self.redirect("/dashboard")

    # -- Registration --

    async def register(self) -> AnyResponse:
        if self.session.is_authenticated:
            return self.redirect("/dashboard")
        if self.ctx.method == "POST":
            return await self._process_register()
        old, errors = self.recall_form()
        return self.render(
            "auth/register", {"page_title": "Create Account", "old": old, "errors": errors}
        )

    async def _process_register(self) -> AnyResponse:
        form = await self.form()
        data = form.to_dict()
        password = data.get("password", "")
        if password != data.get("password_confirmation", ""):
            return self.back_to_form(
                "/register",
                "Please fix the validation errors",
                old=data,
                errors={"password_confirmation": ["Passwords do not match"]},
            )
        try:
            account = await self.users.register(data)
        except ValidationFailed as exc:
            message = exc.first if "email" in exc.errors and len(exc.errors) == 1 else (
                "Please fix the validation errors"
            )
            return self.back_to_form("/register", message, old=data, errors=exc.errors)

        await self.log_activity("register", "Account created", user_id=account.user_id)
        self._send_verification(data["email"].strip(), account.verification_token)
        self.flash(
            "success",
            "Registration successful! Please check your email to verify your account.",
        )
        return self.redirect("/verify-email?" + urlencode({"email": data["email"].strip()}))

    # -- E-mail verification --

    def _send_verification(self, email: str, token: str) -> None:
        link = self.absolute_url("/verify-email?" + urlencode({"token": token}))
        logger.info("Verification link for %s: %s", email, link)

    async def verify_email(self) -> AnyResponse:
        token = self.ctx.query.get("token")
        if not token:
            return self.render(
                "auth/verify-email",
                {"page_title": "Verify Email", "email": self.ctx.query.get("email", "")},
            )
        user = await self.users.get_by_verification_token(token)
        if user is None:
            self.flash("error", "Invalid or expired verification token")
            return self.redirect("/login")
        await self.users.mark_email_verified(user.id)
        await self.log_activity("email_verified", "Email address verified", user_id=user.id)
        self.flash("success", "Email verified successfully! You can now log in.")
        return self.redirect("/login")

    async def resend_verification(self) -> AnyResponse:
        if self.ctx.method != "POST":
            return self.redirect("/login")
        form = await self.form()
        email = (form.get("email") or "").strip()
        if not email:
            self.flash("error", "Email address is required")
            return self.redirect("/verify-email")

        user = await self.users.get_by_email(email)
        if user is None:
            self.flash("error", "Email address not found")
            return self.redirect("/verify-email?" + urlencode({"email": email}))
        if user.email_verified:
            self.flash("info", "Email is already verified")
            return self.redirect("/login")

        token = await self.users.refresh_verification_token(user.id)
        self._send_verification(user.email, token)
        self.flash("success", "Verification email sent successfully")
        return self.redirect("/verify-email?" + urlencode({"email": user.email}))

    # -- Password reset --

    async def forgot_password(self) -> AnyResponse:
        if self.ctx.method != "POST":
            return self.render("auth/forgot-password", {"page_title": "Forgot Password"})

        form = await self.form()
        email = (form.get("email") or "").strip()
        if not email:
            self.flash("error", "Email address is required")
            return self.redirect("/forgot-password")

        user = await self.users.get_by_email(email)
        if user is not None and user.is_active:
            token = await self.users.create_password_reset_token(user.id)
            link = self.absolute_url("/reset-password?" + urlencode({"token": token}))
            logger.info("Password reset link for %s: %s", user.email, link)
            emit_security_event("password_reset_requested", request=self.request, user_id=user.id)

        # Same answer whether or not the account exists
        self.flash("success", RESET_SENT_MESSAGE)
        return self.redirect("/login")

    async def reset_password(self) -> AnyResponse:
        if self.ctx.method == "POST":
            return await self._process_reset()

        token = self.ctx.query.get("token") or ""
        if not token:
            self.flash("error", "Invalid reset token")
            return self.redirect("/forgot-password")
        if await self.users.get_by_reset_token(token) is None:
            self.flash("error", "Invalid or expired reset token")
            return self.redirect("/forgot-password")
        return self.render("auth/reset-password", {"page_title": "Reset Password", "token": token})

    async def _process_reset(self) -> AnyResponse:
        form = await self.form()
        token = form.get("token") or ""
        password = form.get("password") or ""
        confirmation = form.get("password_confirmation") or ""
        back = "/reset-password?" + urlencode({"token": token})

        if not token:
            self.flash("error", "Invalid reset token")
            return self.redirect("/forgot-password")
        if not password or not confirmation:
            return self.back_to_form(back, "Both password fields are required")
        if password != confirmation:
            return self.back_to_form(back, "Passwords do not match")
        check = Validator()
        if not check.validate_password(password):
            return self.back_to_form(back, check.get_errors()[0])

        user = await self.users.reset_password(token, password)
        if user is None:
            self.flash("error", "Invalid or expired reset token")
            return self.redirect("/forgot-password")

        await self.log_activity("password_reset", "Password reset via email link", user_id=user.id)
        emit_security_event("password_reset_completed", request=self.request, user_id=user.id)
        self.flash(
            "success", "Password reset successfully. You can now log in with your new password."
        )
        return self.redirect("/login")

    # -- Logout --

    async def logout(self) -> AnyResponse:
        user_id = self.session.user_id
        if user_id is not None:
            await self.log_activity("logout", "User logged out", user_id=user_id)
            logger.info("User %d logged out", user_id)
        self.session.destroy()
        self.flash("success", "You have been logged out successfully")
        return self.redirect("/login")
