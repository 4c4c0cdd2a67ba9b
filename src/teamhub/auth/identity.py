"""Identity values passed between the auth components."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Minimal projection of a user, produced by a successful login."""

    id: str
    email: str


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller of a request.

    Learn: Produced by the gate and handed to route handlers through
    ``Depends(require_auth)``. Handlers read ``user_id`` only; nothing is
    stashed on the request object.
    """

    user_id: str
    backend: str
