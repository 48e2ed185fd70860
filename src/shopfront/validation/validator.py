"""Stateful field validator with an accumulated error list.

Each ``validate_*`` method checks one value, records at most one message,
and returns a bool. Checks are independent: a caller runs the subset it
needs and inspects ``has_errors()`` / ``get_errors()`` afterward.

Usage::

    v = Validator()
    v.validate_email(form.get("email", ""))
    v.validate_password(form.get("password", ""))
    if v.has_errors():
        flash("error", v.get_errors()[0])

Instances hold no state besides their own error list, so two validators
never see each other's messages.
"""

import html
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import PurePath

from shopfront.constants import (
    EMAIL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    PHONE_MAX_DIGITS,
    PHONE_MIN_DIGITS,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from shopfront.http.forms import UploadFile
from shopfront.validation.rules import EMAIL_RE, URL_RE

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_NAME_RE = re.compile(r"^[a-zA-Z\s\-'.]+$")
_NON_DIGIT_RE = re.compile(r"[^0-9]")
_INT_RE = re.compile(r"^[+-]?\d+$")
_EMAIL_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9!#$%&'*+\-=?^_`{|}~@.\[\]]")
_INT_UNSAFE_RE = re.compile(r"[^0-9+\-]")

DEFAULT_MAX_FILE_SIZE = 5_242_880
DEFAULT_EXTENSIONS: tuple[str, ...] = ("jpg", "jpeg", "png", "gif")
DEFAULT_MIME_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif", "image/webp")

# Leading bytes of the image formats uploads accept
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_mime_type(upload: UploadFile) -> str:
    """Detect the MIME type from content, falling back to the declared type."""
    head = upload.head(16)
    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return upload.content_type.split(";")[0].strip().lower()


class Validator:
    """Accumulates validation errors across a sequence of checks."""

    __slots__ = ("_errors", "allowed_extensions", "allowed_mime_types", "max_file_size")

    def __init__(
        self,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        allowed_mime_types: Iterable[str] = DEFAULT_MIME_TYPES,
    ) -> None:
        self._errors: list[str] = []
        self.max_file_size = max_file_size
        self.allowed_extensions = tuple(allowed_extensions)
        self.allowed_mime_types = tuple(allowed_mime_types)

    # -- Error list --

    def _fail(self, message: str) -> bool:
        self._errors.append(message)
        return False

    def get_errors(self) -> list[str]:
        return list(self._errors)

    def has_errors(self) -> bool:
        return bool(self._errors)

    def clear_errors(self) -> None:
        self._errors.clear()

    # -- Identity fields --

    def validate_email(self, value: str) -> bool:
        if not value:
            return self._fail("Email is required")
        if len(value) > EMAIL_MAX_LENGTH:
            return self._fail("Email is too long")
        if not EMAIL_RE.match(value):
            return self._fail("Invalid email format")
        return True

    def validate_password(self, value: str) -> bool:
        """Length plus one each of upper, lower, digit, and special character."""
        if not value:
            return self._fail("Password is required")
        if len(value) < PASSWORD_MIN_LENGTH:
            return self._fail(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
        if len(value) > PASSWORD_MAX_LENGTH:
            return self._fail("Password is too long")
        if not re.search(r"[A-Z]", value):
            return self._fail("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", value):
            return self._fail("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", value):
            return self._fail("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", value):
            return self._fail("Password must contain at least one special character")
        return True

    def validate_username(self, value: str) -> bool:
        if not value:
            return self._fail("Username is required")
        if len(value) < USERNAME_MIN_LENGTH:
            return self._fail(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
        if len(value) > USERNAME_MAX_LENGTH:
            return self._fail("Username is too long")
        if not _USERNAME_RE.match(value):
            return self._fail("Username can only contain letters, numbers, and underscores")
        if value[0].isdigit():
            return self._fail("Username cannot start with a number")
        return True

    def validate_name(self, value: str) -> bool:
        if not value:
            return self._fail("Name is required")
        if len(value) > NAME_MAX_LENGTH:
            return self._fail("Name is too long")
        if not _NAME_RE.match(value):
            return self._fail("Name contains invalid characters")
        return True

    def validate_phone(self, value: str) -> bool:
        """Optional. When present, 10 to 15 digits once punctuation is removed."""
        if not value:
            return True
        digits = _NON_DIGIT_RE.sub("", value)
        if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
            return self._fail(
                f"Phone number must be between {PHONE_MIN_DIGITS} and {PHONE_MAX_DIGITS} digits"
            )
        return True

    def validate_url(self, value: str) -> bool:
        if not value:
            return True
        if not URL_RE.match(value):
            return self._fail("Invalid URL format")
        return True

    # -- Uploads --

    def validate_file_upload(
        self,
        upload: UploadFile | None,
        allowed_types: Iterable[str] | None = None,
        max_size: int | None = None,
    ) -> bool:
        """Check size, extension, and sniffed MIME type. No file is valid."""
        if upload is None or not upload.filename:
            return True
        limit = self.max_file_size if max_size is None else max_size
        if upload.size > limit:
            return self._fail("File size exceeds maximum allowed size")
        extensions = tuple(self.allowed_extensions if allowed_types is None else allowed_types)
        extension = PurePath(upload.filename).suffix.lstrip(".").lower()
        if extension not in extensions:
            return self._fail(f"File type not allowed. Allowed types: {', '.join(extensions)}")
        if sniff_mime_type(upload) not in self.allowed_mime_types:
            return self._fail("Invalid file type")
        return True

    # -- Generic values --

    def validate_date(self, value: str, fmt: str = "%Y-%m-%d") -> bool:
        if not value:
            return self._fail("Date is required")
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            return self._fail("Invalid date format")
        # Reject lenient parses such as "2024-1-5" for "%Y-%m-%d"
        if parsed.strftime(fmt) != value:
            return self._fail("Invalid date format")
        return True

    def validate_integer(
        self, value: object, minimum: int | None = None, maximum: int | None = None
    ) -> bool:
        if isinstance(value, bool):
            return self._fail("Value must be an integer")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str) and _INT_RE.match(value.strip()):
            number = int(value)
        else:
            return self._fail("Value must be an integer")
        if minimum is not None and number < minimum:
            return self._fail(f"Value must be at least {minimum}")
        if maximum is not None and number > maximum:
            return self._fail(f"Value must be at most {maximum}")
        return True

    def validate_string_length(
        self, value: str, minimum: int = 0, maximum: int | None = None
    ) -> bool:
        if len(value) < minimum:
            return self._fail(f"Value must be at least {minimum} characters long")
        if maximum is not None and len(value) > maximum:
            return self._fail(f"Value must be at most {maximum} characters long")
        return True

    def validate_required(self, value: object, field_name: str = "Field") -> bool:
        """Empty strings, None, and empty collections fail. ``"0"`` passes."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return self._fail(f"{field_name} is required")
        if isinstance(value, (list, tuple, dict, set)) and not value:
            return self._fail(f"{field_name} is required")
        return True

    def validate_in(self, values: object, allowed: Iterable[object]) -> bool:
        """Every value (or the single value) must be in *allowed*."""
        choices = list(allowed)
        items = values if isinstance(values, (list, tuple, set, frozenset)) else [values]
        for item in items:
            if item not in choices:
                return self._fail(f"Invalid value: {item}")
        return True

    # -- Sanitizers --

    @staticmethod
    def sanitize_string(value: str) -> str:
        """Trim and HTML-escape, quotes included."""
        return html.escape(value.strip(), quote=True)

    @staticmethod
    def sanitize_email(value: str) -> str:
        return _EMAIL_UNSAFE_RE.sub("", value.strip())

    @staticmethod
    def sanitize_integer(value: object) -> int:
        """Keep digits and signs, then convert. Garbage becomes 0."""
        cleaned = _INT_UNSAFE_RE.sub("", str(value))
        try:
            return int(cleaned)
        except ValueError:
            return 0
