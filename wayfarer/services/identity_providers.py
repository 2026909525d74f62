"""
External identity providers.

Each provider exchanges a credential obtained by the client SDK (an ID token
or access token) for a normalized `SocialProfile`. The redirect/consent part
of the OAuth flow happens entirely between the client and the provider.
"""
import logging
from typing import Dict, Protocol

import httpx
from jose import JWTError, jwt

from ..config import Settings
from ..schemas import Provider, SocialProfile

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Raised when a provider rejects a credential or cannot be reached"""
    pass


class IdentityProvider(Protocol):
    provider: Provider

    async def fetch_profile(self, credential: str) -> SocialProfile:
        ...


class GoogleIdentityProvider:
    provider = Provider.google
    tokeninfo_url = "https://oauth2.googleapis.com/tokeninfo"

    def __init__(self, client_id: str, timeout: float = 30):
        self.client_id = client_id
        self.timeout = timeout

    async def fetch_profile(self, credential: str) -> SocialProfile:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(self.tokeninfo_url, params={"id_token": credential})
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Google unreachable: {e}")
        if response.status_code != 200:
            raise IdentityProviderError("Google rejected the ID token")

        claims = response.json()
        if claims.get("aud") != self.client_id:
            raise IdentityProviderError("ID token was issued to another client")
        if not claims.get("email"):
            raise IdentityProviderError("Google account has no email")
        return SocialProfile(
            email=claims["email"],
            name=claims.get("name") or claims["email"],
            provider=self.provider,
            provider_id=claims["sub"],
        )


class FacebookIdentityProvider:
    provider = Provider.facebook
    me_url = "https://graph.facebook.com/me"

    def __init__(self, app_id: str, timeout: float = 30):
        self.app_id = app_id
        self.timeout = timeout

    async def fetch_profile(self, credential: str) -> SocialProfile:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    self.me_url,
                    params={"fields": "id,name,email", "access_token": credential},
                )
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Facebook unreachable: {e}")
        if response.status_code != 200:
            raise IdentityProviderError("Facebook rejected the access token")

        data = response.json()
        if not data.get("email"):
            raise IdentityProviderError("Facebook account has no email")
        return SocialProfile(
            email=data["email"],
            name=data.get("name") or data["email"],
            provider=self.provider,
            provider_id=data["id"],
        )


class AppleIdentityProvider:
    provider = Provider.apple
    keys_url = "https://appleid.apple.com/auth/keys"
    issuer = "https://appleid.apple.com"

    def __init__(self, client_id: str, timeout: float = 30):
        self.client_id = client_id
        self.timeout = timeout

    async def fetch_profile(self, credential: str) -> SocialProfile:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(self.keys_url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Apple keys unavailable: {e}")

        try:
            claims = jwt.decode(
                credential,
                response.json(),
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=self.issuer,
            )
        except JWTError as e:
            raise IdentityProviderError(f"Apple rejected the ID token: {e}")

        if not claims.get("email"):
            raise IdentityProviderError("Apple ID token has no email")
        return SocialProfile(
            email=claims["email"],
            name=claims.get("name") or "Apple User",
            provider=self.provider,
            provider_id=claims["sub"],
        )


def build_identity_providers(settings: Settings) -> Dict[Provider, IdentityProvider]:
    """Providers enabled by configuration (a client id must be set)."""
    providers: Dict[Provider, IdentityProvider] = {}
    timeout = settings.http_timeout_seconds
    if settings.google_client_id:
        providers[Provider.google] = GoogleIdentityProvider(
            settings.google_client_id, timeout)
    if settings.facebook_app_id:
        providers[Provider.facebook] = FacebookIdentityProvider(
            settings.facebook_app_id, timeout)
    if settings.apple_client_id:
        providers[Provider.apple] = AppleIdentityProvider(
            settings.apple_client_id, timeout)
    logger.info(
        f"Identity providers enabled: {[p.value for p in providers]}")
    return providers
