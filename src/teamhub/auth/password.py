"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and its checkpw comparison is constant-time.
The work factor (rounds=12) takes ~100ms per hash on modern hardware,
so callers on the event loop run these functions in the thread pool.
"""

from functools import lru_cache
from typing import Optional

import bcrypt

from teamhub.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def dummy_hash() -> str:
    """A real bcrypt hash used when there is no stored hash to check.

    Verifying against it costs the same as verifying a real credential,
    so an unknown email and a wrong password take the same time.
    """
    return hash_password("teamhub-timing-equalizer")
