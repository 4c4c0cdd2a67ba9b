"""API route aggregation.

All routers registered here get mounted in main.py under the configured
base path.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without modifying individual handlers. Health and auth routers are
open (no auth required). Handlers that need the caller's id also
declare ``Depends(require_auth)``; FastAPI caches it per request, so the
gate runs once.
"""

from fastapi import APIRouter, Depends

from teamhub.api.auth import router as auth_router
from teamhub.api.gated import GATED_PREFIXES, build_gated_router
from teamhub.api.health import router as health_router
from teamhub.api.users import router as users_router
from teamhub.api.workspaces import router as workspaces_router
from teamhub.auth.dependencies import require_auth

# All protected routers require authentication
_auth = [Depends(require_auth)]


def build_api_router(base_path: str = "/api") -> APIRouter:
    api_router = APIRouter(prefix=base_path.rstrip("/"))

    # Open routes — no auth required
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(auth_router, tags=["auth"])

    # Protected routes — require a valid session cookie or bearer token
    api_router.include_router(users_router, tags=["user"], dependencies=_auth)
    api_router.include_router(workspaces_router, tags=["workspace"], dependencies=_auth)
    for prefix in GATED_PREFIXES:
        api_router.include_router(build_gated_router(prefix), dependencies=_auth)
    return api_router
