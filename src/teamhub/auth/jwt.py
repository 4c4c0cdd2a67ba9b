"""JWT bearer token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the user id ("sub"), issue time ("iat") and expiry
("exp"). Anyone holding the shared secret can verify it, nobody can
revoke it: a token stays valid until "exp" even after logout.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from teamhub.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    issued_at: datetime
    expires_at: datetime


def encode_token(
    subject: str,
    *,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
    lifetime: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed access token for ``subject``."""
    if not subject:
        raise TokenError("Token subject must not be empty")
    # JWT timestamps have second resolution
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + (
        lifetime or timedelta(seconds=settings.session_max_age_seconds)
    )
    payload = {
        "sub": subject,
        "type": "access",
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(
        payload,
        secret or settings.jwt_secret,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def decode_token(
    token: str,
    *,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> TokenClaims:
    """Verify and decode an access token.

    Returns the claims on success.
    Raises TokenError on failure (bad signature, expired, malformed).
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[algorithm or settings.jwt_algorithm],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != "access":
        raise TokenError("Not an access token")

    return TokenClaims(
        subject=str(payload["sub"]),
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
