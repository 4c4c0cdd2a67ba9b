"""Cookie security policy derived from the deployment environment.

Learn: The frontend and the API live on different sites in production
(e.g. a Vercel frontend calling a Render backend). Browsers only send
cookies on such cross-site requests when they are ``SameSite=None``, and
they reject ``SameSite=None`` unless the cookie is also ``Secure``.
Locally everything is plain HTTP on localhost, so ``Lax`` without
``Secure`` is what works there.
"""

from dataclasses import dataclass
from typing import Optional

SAME_SITE_VALUES = ("strict", "lax", "none")


@dataclass(frozen=True)
class SecurityPolicy:
    secure: bool
    same_site: str
    domain: Optional[str] = None
    path: str = "/"
    max_age: int = 24 * 60 * 60  # seconds

    def __post_init__(self):
        if self.same_site not in SAME_SITE_VALUES:
            raise ValueError(f"same_site must be one of {SAME_SITE_VALUES}, got {self.same_site!r}")
        if self.same_site == "none" and not self.secure:
            raise ValueError("SameSite=None cookies must also be Secure")
        if self.max_age <= 0:
            raise ValueError("max_age must be positive")

    def cookie_kwargs(self) -> dict:
        """Keyword arguments for ``Response.set_cookie``."""
        return {
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": True,
            "samesite": self.same_site,
        }


def policy_for_environment(
    environment: str,
    *,
    max_age: int = 24 * 60 * 60,
    domain: Optional[str] = None,
) -> SecurityPolicy:
    if environment == "production":
        return SecurityPolicy(secure=True, same_site="none", domain=domain, max_age=max_age)
    return SecurityPolicy(secure=False, same_site="lax", domain=domain, max_age=max_age)
