"""Login strategies — turn submitted credentials into an Identity.

Learn: A strategy only decides *who* the caller is. It never touches
cookies or tokens; the session backend does that afterwards. Both
strategies end in exactly one of: an Identity, a user-facing rejection
(InvalidCredentials / OAuthIncomplete), or UpstreamFailure.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import quote

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth.credentials import verify_credentials
from teamhub.auth.identity import Identity
from teamhub.auth.oauth import ProviderProfile
from teamhub.config import Settings
from teamhub.db.models import ProviderEnum
from teamhub.errors import UpstreamFailure
from teamhub.services.user_service import UserService

logger = structlog.get_logger()


class OAuthProvider(Protocol):
    name: str

    def authorization_url(self, *, state: str, code_challenge: str) -> str: ...

    async def fetch_profile(self, *, code: str, code_verifier: str) -> ProviderProfile: ...


@dataclass(frozen=True)
class FederatedOutcome:
    identity: Identity
    current_workspace_id: Optional[str]


class LocalStrategy:
    """Email + password."""

    name = "local"

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> Identity:
        identity = await verify_credentials(db, email, password)
        try:
            await UserService(db).record_login(identity.id)
        except SQLAlchemyError as e:
            raise UpstreamFailure() from e
        return identity


class FederatedStrategy:
    """Login through an external identity provider."""

    name = "federated"

    def __init__(self, provider: OAuthProvider):
        self.provider = provider

    async def authenticate(
        self, db: AsyncSession, *, code: str, code_verifier: str
    ) -> FederatedOutcome:
        profile = await self.provider.fetch_profile(code=code, code_verifier=code_verifier)
        try:
            svc = UserService(db)
            user = await svc.login_or_create_account(
                provider=ProviderEnum.GOOGLE,
                provider_id=profile.provider_id,
                email=profile.email,
                name=profile.name,
                picture=profile.picture,
            )
            await svc.record_login(str(user.id))
        except SQLAlchemyError as e:
            raise UpstreamFailure() from e

        workspace_id = user.current_workspace_id
        return FederatedOutcome(
            identity=Identity(id=str(user.id), email=user.email),
            current_workspace_id=str(workspace_id) if workspace_id else None,
        )


def oauth_failure_url(app_settings: Settings) -> str:
    return f"{app_settings.frontend_google_callback_url}?status=failure"


def oauth_success_url(
    app_settings: Settings, workspace_id: str, token: Optional[str] = None
) -> str:
    """Where the browser lands after a completed federated login.

    In token mode the bearer token is handed over in the URL fragment,
    which browsers never send to servers.
    """
    url = f"{app_settings.frontend_origin}/workspace/{quote(workspace_id, safe='')}"
    if token:
        url = f"{url}#token={token}"
    return url
