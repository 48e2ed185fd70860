"""Password hashing: argon2id via ``argon2-cffi``.

Hashes are PHC-format strings (``$argon2id$...``) safe for the
``users.password`` column. ``needs_rehash`` lets the login flow upgrade
stored hashes when the hasher's parameters change.

Usage::

    from shopfront.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_ARGON2_PREFIX = "$argon2"

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password with argon2id.

    Raises:
        ValueError: If *password* is empty.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def verify_password(password: str, phc_hash: str) -> bool:
    """Verify a password against a stored hash.

    Returns ``False`` for a wrong password, an empty value, or a hash
    that is not argon2 (accounts imported without a usable hash).
    """
    if not password or not phc_hash or not phc_hash.startswith(_ARGON2_PREFIX):
        return False
    try:
        return _hasher.verify(phc_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(phc_hash: str) -> bool:
    """True when *phc_hash* was made with weaker parameters than the current hasher."""
    if not phc_hash.startswith(_ARGON2_PREFIX):
        return True
    try:
        return _hasher.check_needs_rehash(phc_hash)
    except InvalidHashError:
        return True
