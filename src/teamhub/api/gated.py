"""Gated resource prefixes served elsewhere.

Learn: Members, projects and tasks belong to the workspace app but their
handlers are not part of this service. Their prefixes are still mounted
behind the auth gate so an anonymous caller gets the same 401 as on any
other protected route; a logged-in caller gets 404.
"""

from fastapi import APIRouter

from teamhub.errors import NotFoundError

GATED_PREFIXES = ("/member", "/project", "/task")
_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


async def _not_served():
    raise NotFoundError()


def build_gated_router(prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.add_api_route("", _not_served, methods=_METHODS, include_in_schema=False)
    router.add_api_route(
        "/{path:path}", _not_served, methods=_METHODS, include_in_schema=False
    )
    return router
