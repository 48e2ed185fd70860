"""Random tokens for e-mail verification and password reset links."""

import hmac
import secrets

from shopfront.constants import TOKEN_BYTES


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    """Return a hex token with *nbytes* of entropy."""
    return secrets.token_hex(nbytes)


def tokens_match(expected: str | None, given: str | None) -> bool:
    """Constant-time comparison. Missing values never match."""
    if not expected or not given:
        return False
    return hmac.compare_digest(expected.encode(), given.encode())
