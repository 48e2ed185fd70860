"""User entity: accounts, credentials, tokens, wishlist, addresses, activity.

Every query goes through the Data Gateway with bound parameters.
Input is validated here before any write; failures raise
``ValidationFailed`` with per-field messages.
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from shopfront.constants import (
    PASSWORD_RESET_TTL_SECONDS,
    ROLE_ADMIN,
    ROLE_USER,
    ROLES,
    USER_ACTIVE,
    USER_STATUSES,
)
from shopfront.data import Database, map_row
from shopfront.errors import ValidationFailed
from shopfront.models._util import like_pattern, now_text, parse_timestamp
from shopfront.models.pagination import Page
from shopfront.security import generate_token, hash_password, needs_rehash, verify_password
from shopfront.validation import Validator

logger = logging.getLogger("shopfront.data")

_USERNAME_STRIP = re.compile(r"[^a-zA-Z0-9_]+")

ADDRESS_REQUIRED_FIELDS: tuple[str, ...] = (
    "title",
    "first_name",
    "last_name",
    "address_line_1",
    "city",
    "state",
    "postal_code",
    "country",
)
ADDRESS_TYPES: frozenset[str] = frozenset({"billing", "shipping", "both"})


@dataclass(frozen=True, slots=True)
class User:
    """A user account. The password hash never leaves ``UserModel``."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: str = ROLE_USER
    status: str = USER_ACTIVE
    email_verified: bool = False
    last_login: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == USER_ACTIVE


@dataclass(frozen=True, slots=True)
class Address:
    id: int
    user_id: int
    first_name: str
    last_name: str
    address_line_1: str
    city: str
    country: str
    type: str = "both"
    title: str | None = None
    company: str | None = None
    address_line_2: str | None = None
    state: str | None = None
    postal_code: str | None = None
    phone: str | None = None
    is_default: bool = False
    created_at: str = ""


@dataclass(frozen=True, slots=True)
class WishlistItem:
    id: int
    product_id: int
    name: str
    price: float
    slug: str = ""
    image: str | None = None
    stock_quantity: int = 0
    status: str = "active"
    created_at: str = ""

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0


@dataclass(frozen=True, slots=True)
class Activity:
    id: int
    action: str
    user_id: int | None = None
    description: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: str = ""


@dataclass(frozen=True, slots=True)
class NewAccount:
    """What ``register`` hands back: the id and the e-mail verification token."""

    user_id: int
    verification_token: str


def _collect(errors: dict[str, list[str]], field: str, check: Callable[[Validator], bool]) -> None:
    """Run one check on a fresh validator and file its messages under *field*."""
    v = Validator()
    if not check(v):
        errors[field] = v.get_errors()


def _validate_person(data: Mapping[str, str], errors: dict[str, list[str]]) -> None:
    for field in ("first_name", "last_name"):
        value = data.get(field, "")
        _collect(
            errors,
            field,
            lambda v, value=value: (
                v.validate_name(value) and v.validate_string_length(value, 2, 50)
            ),
        )
    _collect(errors, "email", lambda v: v.validate_email(data.get("email", "")))
    _collect(errors, "phone", lambda v: v.validate_phone(data.get("phone", "")))


class UserModel:
    """Data access for ``users`` and the tables that hang off it."""

    __slots__ = ("db",)

    def __init__(self, db: Database) -> None:
        self.db = db

    # -- Lookup --

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.db.fetch_as(User, "SELECT * FROM users WHERE id = ?", user_id)

    async def get_by_email(self, email: str) -> User | None:
        return await self.db.fetch_as(
            User, "SELECT * FROM users WHERE email = ? COLLATE NOCASE", email.strip()
        )

    async def get_by_username(self, username: str) -> User | None:
        return await self.db.fetch_as(User, "SELECT * FROM users WHERE username = ?", username)

    async def _credentials(self, identifier: str) -> tuple[User, str] | None:
        row = await self.db.fetch(
            "SELECT * FROM users WHERE email = ? COLLATE NOCASE OR username = ?",
            identifier.strip(),
            identifier.strip(),
        )
        if row is None:
            return None
        return map_row(User, row), row["password"]

    async def email_exists(self, email: str, exclude_id: int | None = None) -> bool:
        if exclude_id is None:
            count = await self.db.fetch_val(
                "SELECT COUNT(*) FROM users WHERE email = ? COLLATE NOCASE", email.strip()
            )
        else:
            count = await self.db.fetch_val(
                "SELECT COUNT(*) FROM users WHERE email = ? COLLATE NOCASE AND id != ?",
                email.strip(),
                exclude_id,
            )
        return bool(count)

    async def username_exists(self, username: str) -> bool:
        sql = "SELECT COUNT(*) FROM users WHERE username = ?"
        return bool(await self.db.fetch_val(sql, username))

    async def user_exists(self, email: str, username: str) -> bool:
        count = await self.db.fetch_val(
            "SELECT COUNT(*) FROM users WHERE email = ? COLLATE NOCASE OR username = ?",
            email.strip(),
            username,
        )
        return bool(count)

    async def get_all(self, page: int = 1, limit: int = 10) -> Page[User]:
        """Every account, newest first. Admin listing."""
        total = int(await self.db.fetch_val("SELECT COUNT(*) FROM users") or 0)
        items = await self.db.fetch_all_as(
            User,
            "SELECT * FROM users ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            limit,
            (page - 1) * limit,
        )
        return Page(items=items, total=total, page=page, limit=limit)

    async def search(self, term: str, limit: int = 20) -> list[User]:
        pattern = like_pattern(term.strip())
        return await self.db.fetch_all_as(
            User,
            "SELECT * FROM users WHERE email LIKE ? ESCAPE '\\' OR username LIKE ? ESCAPE '\\' "
            "OR first_name LIKE ? ESCAPE '\\' OR last_name LIKE ? ESCAPE '\\' "
            "ORDER BY last_name, first_name LIMIT ?",
            pattern,
            pattern,
            pattern,
            pattern,
            limit,
        )

    # -- Registration and credentials --

    async def _unique_username(self, email: str) -> str:
        base = _USERNAME_STRIP.sub("", email.split("@", 1)[0])[:40] or "user"
        if base[0].isdigit():
            base = f"u{base}"
        candidate = base
        while await self.username_exists(candidate):
            candidate = f"{base}_{secrets.token_hex(2)}"
        return candidate

    async def register(
        self,
        data: Mapping[str, str],
        *,
        role: str = ROLE_USER,
        email_verified: bool = False,
    ) -> NewAccount:
        """Validate and create an account.

        The username is derived from the e-mail address. New accounts
        are active but unverified unless *email_verified* is set.

        Raises:
            ValidationFailed: On invalid input or an e-mail already in use.
        """
        errors: dict[str, list[str]] = {}
        _validate_person(data, errors)
        _collect(errors, "password", lambda v: v.validate_password(data.get("password", "")))
        if role not in ROLES:
            errors["role"] = [f"Invalid value: {role}"]
        if errors:
            raise ValidationFailed(errors)

        email = data["email"].strip()
        token = generate_token()
        hashed = hash_password(data["password"])
        async with self.db.transaction():
            if await self.email_exists(email):
                raise ValidationFailed({"email": ["Email address is already registered"]})
            now = now_text()
            user_id = await self.db.insert(
                "users",
                {
                    "username": await self._unique_username(email),
                    "email": email,
                    "password": hashed,
                    "first_name": data["first_name"].strip(),
                    "last_name": data["last_name"].strip(),
                    "phone": (data.get("phone") or "").strip() or None,
                    "role": role,
                    "status": USER_ACTIVE,
                    "email_verified": int(email_verified),
                    "email_verification_token": None if email_verified else token,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        logger.info("Registered user %d <%s>", user_id, email)
        return NewAccount(user_id=user_id, verification_token=token)

    async def authenticate(self, identifier: str, password: str) -> User | None:
        """Return the user whose password matches, else ``None``.

        Account status is not checked here; callers decide what an
        inactive or unverified account means for them.
        """
        found = await self._credentials(identifier)
        if found is None:
            return None
        user, stored = found
        if not verify_password(password, stored):
            return None
        if needs_rehash(stored):
            await self.db.update("users", {"password": hash_password(password)}, "id = ?", user.id)
        return user

    async def record_login(self, user_id: int) -> None:
        await self.db.update("users", {"last_login": now_text()}, "id = ?", user_id)

    async def check_password(self, user_id: int, password: str) -> bool:
        stored = await self.db.fetch_val("SELECT password FROM users WHERE id = ?", user_id)
        return bool(stored) and verify_password(password, stored)

    async def set_password(self, user_id: int, password: str) -> bool:
        """Store a new hash and invalidate any outstanding reset token."""
        changed = await self.db.update(
            "users",
            {
                "password": hash_password(password),
                "password_reset_token": None,
                "password_reset_expires": None,
                "updated_at": now_text(),
            },
            "id = ?",
            user_id,
        )
        return changed > 0

    async def change_password(self, user_id: int, current: str, new: str) -> bool:
        """Replace the password when *current* matches. False otherwise."""
        if not await self.check_password(user_id, current):
            return False
        return await self.set_password(user_id, new)

    # -- Profile --

    async def update_profile(self, user_id: int, data: Mapping[str, str]) -> bool:
        """Update name, e-mail and phone.

        Raises:
            ValidationFailed: On invalid input, or when the e-mail belongs
                to another account.
        """
        errors: dict[str, list[str]] = {}
        _validate_person(data, errors)
        if errors:
            raise ValidationFailed(errors)
        email = data["email"].strip()
        if await self.email_exists(email, exclude_id=user_id):
            raise ValidationFailed({"email": ["Email is already taken by another user"]})
        changed = await self.db.update(
            "users",
            {
                "first_name": data["first_name"].strip(),
                "last_name": data["last_name"].strip(),
                "email": email,
                "phone": (data.get("phone") or "").strip() or None,
                "updated_at": now_text(),
            },
            "id = ?",
            user_id,
        )
        return changed > 0

    async def set_status(self, user_id: int, status: str) -> bool:
        if status not in USER_STATUSES:
            raise ValidationFailed({"status": [f"Invalid value: {status}"]})
        return await self.db.update("users", {"status": status}, "id = ?", user_id) > 0

    async def delete(self, user_id: int) -> bool:
        return await self.db.delete("users", "id = ?", user_id) > 0

    # -- E-mail verification --

    async def get_by_verification_token(self, token: str) -> User | None:
        if not token:
            return None
        return await self.db.fetch_as(
            User, "SELECT * FROM users WHERE email_verification_token = ?", token
        )

    async def mark_email_verified(self, user_id: int) -> bool:
        changed = await self.db.update(
            "users",
            {"email_verified": 1, "email_verification_token": None, "updated_at": now_text()},
            "id = ?",
            user_id,
        )
        return changed > 0

    async def refresh_verification_token(self, user_id: int) -> str:
        token = generate_token()
        await self.db.update("users", {"email_verification_token": token}, "id = ?", user_id)
        return token

    # -- Password reset --

    async def create_password_reset_token(
        self, user_id: int, ttl_seconds: int = PASSWORD_RESET_TTL_SECONDS
    ) -> str:
        token = generate_token()
        await self.db.update(
            "users",
            {"password_reset_token": token, "password_reset_expires": now_text(ttl_seconds)},
            "id = ?",
            user_id,
        )
        return token

    async def get_by_reset_token(self, token: str) -> User | None:
        """The user holding *token*, provided it has not expired."""
        if not token:
            return None
        row = await self.db.fetch(
            "SELECT id, password_reset_expires FROM users WHERE password_reset_token = ?", token
        )
        if row is None:
            return None
        expires = parse_timestamp(row["password_reset_expires"])
        if expires is None or expires < datetime.now(UTC):
            return None
        return await self.get_by_id(row["id"])

    async def reset_password(self, token: str, password: str) -> User | None:
        """Consume a reset token and set the new password atomically."""
        async with self.db.transaction():
            user = await self.get_by_reset_token(token)
            if user is None:
                return None
            await self.set_password(user.id, password)
        return user

    # -- Activity log --

    async def log_activity(
        self,
        user_id: int | None,
        action: str,
        description: str = "",
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> int:
        return await self.db.insert(
            "activity_logs",
            {
                "user_id": user_id,
                "action": action,
                "description": description,
                "ip_address": ip_address,
                "user_agent": user_agent,
                "created_at": now_text(),
            },
        )

    async def recent_activity(self, user_id: int, limit: int = 10) -> list[Activity]:
        return await self.db.fetch_all_as(
            Activity,
            "SELECT * FROM activity_logs WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT ?",
            user_id,
            limit,
        )

    # -- Wishlist --

    async def wishlist_items(
        self, user_id: int, limit: int = 20, page: int = 1
    ) -> list[WishlistItem]:
        return await self.db.fetch_all_as(
            WishlistItem,
            "SELECT w.id, w.product_id, w.created_at, p.name, p.slug, p.price, p.image, "
            "p.stock_quantity, p.status "
            "FROM wishlists w JOIN products p ON p.id = w.product_id "
            "WHERE w.user_id = ? ORDER BY w.created_at DESC, w.id DESC LIMIT ? OFFSET ?",
            user_id,
            limit,
            (page - 1) * limit,
        )

    async def wishlist_count(self, user_id: int) -> int:
        sql = "SELECT COUNT(*) FROM wishlists WHERE user_id = ?"
        return int(await self.db.fetch_val(sql, user_id) or 0)

    async def in_wishlist(self, user_id: int, product_id: int) -> bool:
        count = await self.db.fetch_val(
            "SELECT COUNT(*) FROM wishlists WHERE user_id = ? AND product_id = ?",
            user_id,
            product_id,
        )
        return bool(count)

    async def add_to_wishlist(self, user_id: int, product_id: int) -> bool:
        """Add a product. Adding one already present is a success. Unknown products are not."""
        exists = await self.db.fetch_val("SELECT COUNT(*) FROM products WHERE id = ?", product_id)
        if not exists:
            return False
        await self.db.query(
            "INSERT OR IGNORE INTO wishlists (user_id, product_id, created_at) VALUES (?, ?, ?)",
            user_id,
            product_id,
            now_text(),
        )
        return True

    async def remove_from_wishlist(self, user_id: int, product_id: int) -> bool:
        removed = await self.db.delete(
            "wishlists", "user_id = ? AND product_id = ?", user_id, product_id
        )
        return removed > 0

    # -- Addresses --

    async def addresses(self, user_id: int) -> list[Address]:
        return await self.db.fetch_all_as(
            Address,
            "SELECT * FROM user_addresses WHERE user_id = ? ORDER BY is_default DESC, id",
            user_id,
        )

    async def add_address(self, user_id: int, data: Mapping[str, str]) -> int:
        """Store an address. A new default address demotes the old one.

        Raises:
            ValidationFailed: When a required field is empty.
        """
        missing = [f for f in ADDRESS_REQUIRED_FIELDS if not (data.get(f) or "").strip()]
        if missing:
            raise ValidationFailed({f: ["All required fields must be filled"] for f in missing})
        kind = (data.get("type") or "both").strip()
        if kind not in ADDRESS_TYPES:
            raise ValidationFailed({"type": [f"Invalid value: {kind}"]})
        is_default = bool(data.get("is_default"))

        def text(name: str) -> str | None:
            return (data.get(name) or "").strip() or None

        async with self.db.transaction():
            if is_default:
                await self.db.update("user_addresses", {"is_default": 0}, "user_id = ?", user_id)
            now = now_text()
            return await self.db.insert(
                "user_addresses",
                {
                    "user_id": user_id,
                    "type": kind,
                    "title": text("title"),
                    "first_name": text("first_name"),
                    "last_name": text("last_name"),
                    "company": text("company"),
                    "address_line_1": text("address_line_1"),
                    "address_line_2": text("address_line_2"),
                    "city": text("city"),
                    "state": text("state"),
                    "postal_code": text("postal_code"),
                    "country": text("country"),
                    "phone": text("phone"),
                    "is_default": int(is_default),
                    "created_at": now,
                    "updated_at": now,
                },
            )

    async def delete_address(self, user_id: int, address_id: int) -> bool:
        """Delete one of the user's own addresses."""
        removed = await self.db.delete(
            "user_addresses", "id = ? AND user_id = ?", address_id, user_id
        )
        return removed > 0
