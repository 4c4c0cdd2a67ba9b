"""Google OAuth 2.0 client (authorization code flow with PKCE).

Learn: The login dance has two legs.

1. ``GET /auth/google`` → we redirect the browser to Google with a random
   ``state`` and a PKCE ``code_challenge``. The matching ``state`` and
   ``code_verifier`` ride along in a short-lived signed cookie.
2. ``GET /auth/google/callback?code=...&state=...`` → we check ``state``
   against the cookie, exchange ``code`` (+ verifier) for an access token
   and read the user's profile from the userinfo endpoint.

Network failures talking to Google are UpstreamFailure (500). Anything
the user or Google refused (denied consent, replayed code, unverified
email, state mismatch) is OAuthIncomplete, which the callback turns into
a redirect to the frontend failure page.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog
from itsdangerous import BadSignature, URLSafeTimedSerializer

from teamhub.config import Settings
from teamhub.errors import OAuthIncomplete, UpstreamFailure

logger = structlog.get_logger()

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_SALT = "teamhub-oauth-state-v1"
OAUTH_STATE_MAX_AGE = 10 * 60


@dataclass(frozen=True)
class ProviderProfile:
    """The identity a provider vouches for."""

    provider_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_token(nbytes: int = 32) -> str:
    return b64url(secrets.token_bytes(nbytes))


def pkce_challenge(verifier: str) -> str:
    """S256 PKCE challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return b64url(digest)


class OAuthStateCodec:
    """Signs the (state, code_verifier) pair carried between the two legs."""

    def __init__(self, secret: str, max_age: int = OAUTH_STATE_MAX_AGE):
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=OAUTH_STATE_SALT)

    def dumps(self, state: str, code_verifier: str) -> str:
        return self._serializer.dumps({"state": state, "verifier": code_verifier})

    def verify(self, cookie_value: Optional[str], returned_state: Optional[str]) -> str:
        """Return the code verifier if ``returned_state`` matches the cookie."""
        if not cookie_value or not returned_state:
            raise OAuthIncomplete("Missing OAuth state")
        try:
            data = self._serializer.loads(cookie_value, max_age=self.max_age)
        except BadSignature:
            raise OAuthIncomplete("Invalid or expired OAuth state")
        if not isinstance(data, dict):
            raise OAuthIncomplete("Invalid OAuth state")
        state = str(data.get("state") or "")
        verifier = str(data.get("verifier") or "")
        if not state or not verifier or not secrets.compare_digest(state, returned_state):
            raise OAuthIncomplete("OAuth state mismatch")
        return verifier


class GoogleOAuthClient:
    name = "google"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    def authorization_url(self, *, state: str, code_challenge: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_profile(self, *, code: str, code_verifier: str) -> ProviderProfile:
        """Exchange ``code`` for a token and return the user's profile."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            token_response = await self._send(
                client,
                "POST",
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "code_verifier": code_verifier,
                },
            )
            access_token = token_response.get("access_token")
            if not access_token:
                raise OAuthIncomplete("Token response missing access_token")

            userinfo = await self._send(
                client,
                "GET",
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        provider_id = str(userinfo.get("sub") or "")
        email = str(userinfo.get("email") or "")
        if not provider_id or not email:
            raise OAuthIncomplete("Provider profile missing sub or email")
        # Some providers omit email_verified; only an explicit false is rejected
        if userinfo.get("email_verified") is False:
            raise OAuthIncomplete("Email not verified")

        return ProviderProfile(
            provider_id=provider_id,
            email=email.lower(),
            name=userinfo.get("name"),
            picture=userinfo.get("picture"),
        )

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamFailure() from e

        if response.status_code >= 500:
            raise UpstreamFailure()
        if response.status_code >= 400:
            # Avoid leaking provider error bodies; status is enough to debug
            logger.info("auth.oauth_provider_rejected", url=url, status=response.status_code)
            raise OAuthIncomplete(f"Provider rejected request (status={response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamFailure() from e
        if not isinstance(data, dict):
            raise UpstreamFailure()
        return data


def build_oauth_provider(app_settings: Settings) -> Optional[GoogleOAuthClient]:
    """Google client, or None when no client credentials are configured."""
    if not app_settings.google_enabled:
        return None
    return GoogleOAuthClient(
        client_id=app_settings.google_client_id,
        client_secret=app_settings.google_client_secret,
        redirect_uri=app_settings.google_callback_url,
    )
