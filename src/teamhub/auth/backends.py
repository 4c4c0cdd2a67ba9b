"""Session backends — how an authenticated user stays authenticated.

Learn: A deployment runs exactly one backend, picked from settings when
the app is created (``build_session_backend``) and stored on
``app.state``. Everything request-facing talks to the abstract
``SessionBackend``; nothing downstream asks "which mode are we in?".

- CookieBackend: a signed ``session`` cookie naming a server-side
  session row. Logout deletes the row, so a copied cookie stops working.
- TokenBackend: the session is a JWT the client sends back in
  ``Authorization: Bearer <token>``. Logout cannot revoke it.

Backends flush; the route that called them commits.
"""

import secrets
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import Response

from teamhub.auth.identity import AuthContext, Identity
from teamhub.auth.jwt import TokenError, decode_token, encode_token
from teamhub.auth.policy import SecurityPolicy
from teamhub.config import Settings
from teamhub.db.models import UserSession, utcnow
from teamhub.errors import Unauthenticated, UpstreamFailure

logger = structlog.get_logger()

SESSION_COOKIE_NAME = "session"
SESSION_SALT = "teamhub-session-v1"


@dataclass(frozen=True)
class LoginArtifact:
    """What a successful login hands back to the client.

    ``token`` is set only by backends whose artifact travels in the
    response body; cookie sessions travel in Set-Cookie instead.
    """

    token: Optional[str] = None


class SessionBackend(ABC):
    """Issue, check and discard the per-user session artifact."""

    name: str

    @abstractmethod
    async def establish(
        self, request: Request, response: Response, identity: Identity, db: AsyncSession
    ) -> LoginArtifact:
        """Create the artifact for ``identity`` and attach it to ``response``."""

    @abstractmethod
    async def authenticate(self, request: Request, db: AsyncSession) -> AuthContext:
        """Return the caller's context or raise Unauthenticated."""

    @abstractmethod
    async def logout(self, request: Request, response: Response, db: AsyncSession) -> None:
        """Discard the caller's artifact. Must be safe to call without one."""


class CookieBackend(SessionBackend):
    name = "cookie"

    def __init__(self, secret: str, policy: SecurityPolicy):
        if not secret:
            raise ValueError("CookieBackend requires a session secret")
        self.policy = policy
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=SESSION_SALT)

    def _load(self, value: Optional[str]) -> Optional[dict]:
        """Decode a cookie value; None when missing, forged, expired or malformed."""
        if not value:
            return None
        try:
            payload = self._serializer.loads(value, max_age=self.policy.max_age)
        except BadSignature:
            # Covers SignatureExpired and BadTimeSignature too
            return None
        if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
            return None
        data = payload.get("data")
        if not isinstance(data, dict):
            return None
        return payload

    async def _find(self, db: AsyncSession, session_id: str) -> Optional[UserSession]:
        try:
            return await db.get(UserSession, session_id)
        except SQLAlchemyError as e:
            raise UpstreamFailure() from e

    async def establish(self, request, response, identity, db):
        user_id = uuid.UUID(identity.id)
        expires_at = utcnow() + timedelta(seconds=self.policy.max_age)

        current = self._load(request.cookies.get(SESSION_COOKIE_NAME))
        record = await self._find(db, current["id"]) if current else None
        # Only a live session of the same user keeps its id; anything else
        # (logged out, expired, someone else's) gets a fresh one
        if record is not None and record.user_id == user_id and not record.is_expired():
            record.expires_at = expires_at
        else:
            record = UserSession(
                id=secrets.token_urlsafe(32), user_id=user_id, expires_at=expires_at
            )
            db.add(record)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise UpstreamFailure() from e

        payload = {
            "id": record.id,
            "iat": int(time.time()),
            "data": {"user_id": identity.id},
        }
        response.set_cookie(
            SESSION_COOKIE_NAME,
            self._serializer.dumps(payload),
            **self.policy.cookie_kwargs(),
        )
        return LoginArtifact()

    async def authenticate(self, request, db):
        payload = self._load(request.cookies.get(SESSION_COOKIE_NAME))
        user_id = payload["data"].get("user_id") if payload else None
        if not isinstance(user_id, str) or not user_id:
            logger.debug("auth.session_rejected", backend=self.name, reason="cookie")
            raise Unauthenticated()

        record = await self._find(db, payload["id"])
        if record is None or str(record.user_id) != user_id or record.is_expired():
            logger.debug("auth.session_rejected", backend=self.name, reason="revoked")
            raise Unauthenticated()
        return AuthContext(user_id=user_id, backend=self.name)

    async def logout(self, request, response, db):
        # Clear the browser copy first; it goes out even if the store fails
        response.delete_cookie(
            SESSION_COOKIE_NAME,
            path=self.policy.path,
            domain=self.policy.domain,
            secure=self.policy.secure,
            httponly=True,
            samesite=self.policy.same_site,
        )
        payload = self._load(request.cookies.get(SESSION_COOKIE_NAME))
        if payload is None:
            return
        record = await self._find(db, payload["id"])
        if record is not None:
            await db.delete(record)
            await db.flush()


class TokenBackend(SessionBackend):
    name = "token"

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: int = 24 * 60 * 60):
        if not secret:
            raise ValueError("TokenBackend requires a signing secret")
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = timedelta(seconds=lifetime)

    async def establish(self, request, response, identity, db):
        token = encode_token(
            identity.id,
            secret=self._secret,
            algorithm=self._algorithm,
            lifetime=self.lifetime,
        )
        return LoginArtifact(token=token)

    async def authenticate(self, request, db):
        challenge = {"WWW-Authenticate": "Bearer"}
        authorization = request.headers.get("Authorization", "")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthenticated(headers=challenge)
        try:
            claims = decode_token(
                token.strip(), secret=self._secret, algorithm=self._algorithm
            )
        except TokenError as e:
            logger.debug("auth.token_rejected", backend=self.name, reason=str(e))
            raise Unauthenticated(headers=challenge)
        return AuthContext(user_id=claims.subject, backend=self.name)

    async def logout(self, request, response, db):
        # Stateless: the client discards the token, it stays valid until exp.
        return None


def build_session_backend(app_settings: Settings, policy: SecurityPolicy) -> SessionBackend:
    """Build the one backend this deployment runs."""
    if app_settings.session_backend == "token":
        return TokenBackend(
            secret=app_settings.jwt_secret,
            algorithm=app_settings.jwt_algorithm,
            lifetime=app_settings.session_max_age_seconds,
        )
    return CookieBackend(secret=app_settings.session_secret, policy=policy)
