"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers and at the
include_router level to extract and validate the caller's identity.

``require_auth`` is the gate for every protected route:
1. Extract the session artifact (cookie or bearer header)
2. Validate it (signature, age / expiry, subject present; a cookie
   session must also still exist server-side)
3. Return an AuthContext for the handler
Any failure raises Unauthenticated → 401 before the handler runs.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth.backends import SessionBackend
from teamhub.auth.identity import AuthContext
from teamhub.auth.policy import SecurityPolicy
from teamhub.auth.strategies import OAuthProvider
from teamhub.config import Settings
from teamhub.db.engine import get_db
from teamhub.errors import Unauthenticated

logger = structlog.get_logger()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_security_policy(request: Request) -> SecurityPolicy:
    return request.app.state.security_policy


def get_session_backend(request: Request) -> SessionBackend:
    return request.app.state.session_backend


def get_oauth_provider(request: Request) -> Optional[OAuthProvider]:
    return request.app.state.oauth_provider


async def require_auth(
    request: Request,
    backend: SessionBackend = Depends(get_session_backend),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Authenticate the request (required — 401 if no valid session)."""
    try:
        context = await backend.authenticate(request, db)
    except Unauthenticated:
        logger.info("auth.gate_rejected", backend=backend.name, path=request.url.path)
        raise
    # Bind for correlated logging; user id only, never the artifact
    structlog.contextvars.bind_contextvars(user_id=context.user_id)
    return context
