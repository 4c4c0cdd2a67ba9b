"""Auth API — registration, login, Google OAuth, logout.

Learn: Routes for user authentication:
- POST /auth/register → create a user (+ personal workspace)
- POST /auth/login → email/password → session cookie or bearer token
- GET /auth/google → redirect to Google's consent screen
- GET /auth/google/callback → finish OAuth, redirect to the frontend
- POST /auth/logout → drop the session (always 200)

The session backend injected here decides whether "logged in" means a
Set-Cookie header or a token in the JSON body; these handlers don't care.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth.backends import SessionBackend
from teamhub.auth.dependencies import (
    get_oauth_provider,
    get_security_policy,
    get_session_backend,
    get_settings,
)
from teamhub.auth.oauth import (
    OAUTH_STATE_COOKIE,
    OAUTH_STATE_MAX_AGE,
    OAuthStateCodec,
    pkce_challenge,
    random_token,
)
from teamhub.auth.policy import SecurityPolicy
from teamhub.auth.strategies import (
    FederatedStrategy,
    LocalStrategy,
    OAuthProvider,
    oauth_failure_url,
    oauth_success_url,
)
from teamhub.config import Settings
from teamhub.db.engine import get_db
from teamhub.errors import ConflictError, InvalidCredentials, OAuthIncomplete
from teamhub.schemas.auth import LoginRequest, RegisterRequest
from teamhub.schemas.user import UserRead
from teamhub.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account."""
    user = await UserService(db).register_user(
        email=body.email, name=body.name, password=body.password
    )
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        await db.rollback()
        raise ConflictError("Email already exists")

    logger.info("auth.user_registered", user_id=str(user.id))
    return {"message": "User created successfully"}


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    backend: SessionBackend = Depends(get_session_backend),
):
    """Login with email and password → session artifact."""
    try:
        identity = await LocalStrategy().authenticate(db, body.email, body.password)
    except InvalidCredentials:
        logger.info("auth.login_failed", strategy="local", outcome="invalid_credentials")
        raise

    user = await UserService(db).get_user(identity.id)
    artifact = await backend.establish(request, response, identity, db)
    await db.commit()
    logger.info(
        "auth.login_succeeded",
        user_id=identity.id,
        strategy="local",
        backend=backend.name,
    )

    payload = {
        "message": "Logged in successfully",
        "user": UserRead.model_validate(user).model_dump(mode="json"),
    }
    if artifact.token is not None:
        payload["token"] = artifact.token
    return payload


# ─── Google OAuth ────────────────────────────────────────


def _state_cookie_attributes(policy: SecurityPolicy) -> dict:
    # Set and delete must agree on these or the browser keeps the cookie
    return {
        "path": "/",
        "domain": policy.domain,
        "secure": policy.secure,
        "httponly": True,
        # The provider redirect back is a top-level GET navigation
        "samesite": "lax",
    }


@router.get("/google")
async def google_login(
    provider: Optional[OAuthProvider] = Depends(get_oauth_provider),
    app_settings: Settings = Depends(get_settings),
    policy: SecurityPolicy = Depends(get_security_policy),
):
    """Start the OAuth dance: redirect to the provider's consent screen."""
    if provider is None:
        logger.warning("auth.oauth_not_configured")
        return RedirectResponse(oauth_failure_url(app_settings), status_code=302)

    state = random_token()
    code_verifier = random_token(48)
    response = RedirectResponse(
        provider.authorization_url(state=state, code_challenge=pkce_challenge(code_verifier)),
        status_code=302,
    )
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        OAuthStateCodec(app_settings.session_secret).dumps(state, code_verifier),
        max_age=OAUTH_STATE_MAX_AGE,
        **_state_cookie_attributes(policy),
    )
    return response


@router.get("/google/callback")
async def google_login_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    backend: SessionBackend = Depends(get_session_backend),
    provider: Optional[OAuthProvider] = Depends(get_oauth_provider),
    app_settings: Settings = Depends(get_settings),
    policy: SecurityPolicy = Depends(get_security_policy),
):
    """Finish the OAuth dance and send the browser to its workspace."""
    failure = RedirectResponse(oauth_failure_url(app_settings), status_code=302)
    failure.delete_cookie(OAUTH_STATE_COOKIE, **_state_cookie_attributes(policy))

    try:
        if provider is None:
            raise OAuthIncomplete("OAuth provider not configured")
        if error:
            raise OAuthIncomplete(f"Provider returned error: {error}")
        if not code:
            raise OAuthIncomplete("Missing authorization code")
        code_verifier = OAuthStateCodec(app_settings.session_secret).verify(
            request.cookies.get(OAUTH_STATE_COOKIE), state
        )
        outcome = await FederatedStrategy(provider).authenticate(
            db, code=code, code_verifier=code_verifier
        )
    except OAuthIncomplete as e:
        logger.info("auth.login_failed", strategy="federated", outcome="oauth_incomplete", reason=e.message)
        return failure

    if outcome.current_workspace_id is None:
        # Login is rejected, not left half-done: no session is issued
        await db.commit()
        logger.info(
            "auth.login_failed",
            strategy="federated",
            outcome="no_workspace",
            user_id=outcome.identity.id,
        )
        return failure

    response = RedirectResponse(
        oauth_success_url(app_settings, outcome.current_workspace_id), status_code=302
    )
    response.delete_cookie(OAUTH_STATE_COOKIE, **_state_cookie_attributes(policy))
    artifact = await backend.establish(request, response, outcome.identity, db)
    await db.commit()
    if artifact.token is not None:
        response.headers["location"] = oauth_success_url(
            app_settings, outcome.current_workspace_id, token=artifact.token
        )

    logger.info(
        "auth.login_succeeded",
        user_id=outcome.identity.id,
        strategy="federated",
        backend=backend.name,
    )
    return response


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    backend: SessionBackend = Depends(get_session_backend),
):
    """Drop the current session. Logging out twice is fine."""
    try:
        await backend.logout(request, response, db)
        await db.commit()
    except Exception as e:
        # Logout always reports success; cleanup failures are only logged
        await db.rollback()
        logger.warning("auth.logout_failed", backend=backend.name, error=str(e))
    else:
        logger.info("auth.logged_out", backend=backend.name)
    return {"message": "Logged out successfully"}
