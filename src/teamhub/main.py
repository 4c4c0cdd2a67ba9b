"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. This is also where the deployment's auth wiring happens, once:
the cookie security policy, the session backend and the OAuth provider
are built from settings and stored on ``app.state``, where the auth
dependencies pick them up. Tests build apps with their own Settings.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from teamhub import __version__
from teamhub.api import build_api_router
from teamhub.auth.backends import build_session_backend
from teamhub.auth.oauth import build_oauth_provider
from teamhub.auth.password import dummy_hash
from teamhub.auth.policy import policy_for_environment
from teamhub.config import Settings, settings
from teamhub.errors import register_exception_handlers
from teamhub.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    # Built before serving so the first unknown-email login costs the same
    # bcrypt work as every other rejected login
    await run_in_threadpool(dummy_hash)

    app_settings: Settings = app.state.settings
    logger.info(
        "teamhub.starting",
        version=__version__,
        environment=app_settings.environment,
        session_backend=app.state.session_backend.name,
        google_login=app.state.oauth_provider is not None,
    )

    yield

    logger.info("teamhub.shutdown")

    # Close database engine
    from teamhub.db.engine import engine
    await engine.dispose()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app_settings = app_settings or settings
    configure_logging(app_settings)

    app = FastAPI(
        title="TeamHub API",
        description="Workspace collaboration backend — accounts, login and sessions",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Auth wiring (one backend per deployment) ─────────────
    policy = policy_for_environment(
        app_settings.environment,
        max_age=app_settings.session_max_age_seconds,
        domain=app_settings.cookie_domain,
    )
    app.state.settings = app_settings
    app.state.security_policy = policy
    app.state.session_backend = build_session_backend(app_settings, policy)
    app.state.oauth_provider = build_oauth_provider(app_settings)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from teamhub.middleware.request_id import RequestIdMiddleware
    from teamhub.middleware.security import SecurityHeadersMiddleware

    base_path = app_settings.base_path.rstrip("/")
    origins = list(dict.fromkeys([app_settings.frontend_origin, *app_settings.cors_origins]))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(SecurityHeadersMiddleware, auth_path_prefix=f"{base_path}/auth")
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    # Mount API routes
    app.include_router(build_api_router(base_path))

    return app


# Default app instance (used by uvicorn: teamhub.main:app)
app = create_app()
