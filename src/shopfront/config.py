"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation and loaded
once at process start. ``AppConfig.from_env()`` reads ``SHOPFRONT_*``
environment variables for deployments.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from shopfront.errors import ConfigurationError

_ENV_PREFIX = "SHOPFRONT_"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, secret_key="s3cr3t",
                           database_url="sqlite:///shop.db")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Mount prefix stripped before routing (e.g. "/shop")
    base_path: str = ""

    # Security
    secret_key: str = ""
    session_lifetime: int = 7200
    session_cookie: str = "shopfront_session"
    secure_cookies: bool = False
    # Read the client address from X-Forwarded-For; only behind a proxy that sets it
    trust_forwarded_for: bool = False

    # Database
    database_url: str = "sqlite:///shopfront.db"
    auto_migrate: bool = True
    echo_sql: bool = False

    # Templates (optional override directory searched before the bundled views)
    template_dir: str | Path | None = None
    app_name: str = "Shopfront"

    # Uploads
    upload_dir: str | Path = "uploads"
    max_file_size: int = 5_242_880
    allowed_extensions: tuple[str, ...] = ("jpg", "jpeg", "png", "gif")
    allowed_mime_types: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif", "image/webp")

    # Pagination
    items_per_page: int = 10
    max_items_per_page: int = 100
    products_per_page: int = 20

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> AppConfig:
        """Build a config from ``SHOPFRONT_*`` variables.

        ``SHOPFRONT_DEBUG=1`` sets ``debug``, ``SHOPFRONT_DATABASE_URL``
        sets ``database_url``, and so on for every scalar field. Tuple
        fields take comma-separated values. Keyword overrides win.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(f"{_ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, f.default, raw)
        values.update(overrides)
        return cls(**values)


def _coerce(name: str, default: Any, raw: str) -> Any:
    """Convert an environment string to the type of the field default."""
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            msg = f"{_ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}"
            raise ConfigurationError(msg) from None
    if isinstance(default, tuple):
        return tuple(part.strip() for part in raw.split(",") if part.strip())
    return raw
