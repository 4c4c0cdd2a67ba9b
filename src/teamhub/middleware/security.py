"""Security headers middleware.

Learn: Adds standard security headers to every response:
- X-Content-Type-Options: prevents MIME-type sniffing
- X-Frame-Options: prevents clickjacking
- Referrer-Policy: limits referrer info leakage
- Strict-Transport-Security: forces HTTPS (only on HTTPS connections)
- Cache-Control: no-store on anything that sets a cookie or lives under
  /auth, so no shared cache ever holds a session artifact or token

Behind a TLS-terminating proxy the app sees plain HTTP; the CLI starts
uvicorn with proxy headers enabled in production so ``request.url.scheme``
reflects the client's scheme.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, auth_path_prefix: str = "/api/auth"):
        super().__init__(app)
        self.auth_path_prefix = auth_path_prefix

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        sets_cookie = "set-cookie" in response.headers
        if sets_cookie or request.url.path.startswith(self.auth_path_prefix):
            response.headers["Cache-Control"] = "no-store"

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
