"""Password hashing helpers."""

import hashlib
import hmac
import secrets

_ITERATIONS = 100_000


def hash_password(password: str, salt: str | None = None) -> str:
    """Hash a password with salt using PBKDF2-SHA256."""
    if salt is None:
        salt = secrets.token_hex(16)
    key = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _ITERATIONS
    )
    return f"{salt}${key.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash in constant time."""
    try:
        salt, _ = password_hash.split("$")
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), password_hash)


# Verified against when no user matches the login identifier.
DUMMY_PASSWORD_HASH = hash_password(secrets.token_urlsafe(16))
