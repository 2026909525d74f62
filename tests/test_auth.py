import httpx
import pytest

from wayfarer.roles import Role
from wayfarer.schemas import Provider, SocialProfile
from wayfarer.services.identity_providers import IdentityProviderError
from wayfarer.services.token_service import TokenService


class FakeGoogle:
    provider = Provider.google

    def __init__(self, profile=None):
        self.profile = profile

    async def fetch_profile(self, credential: str) -> SocialProfile:
        if credential != "good-credential" or self.profile is None:
            raise IdentityProviderError("rejected")
        return self.profile


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["/api", "/api/v2"])
async def test_register_login_and_me(client: httpx.AsyncClient, prefix):
    r = await client.post(f"{prefix}/auth/register", json={
        "email": "traveller@example.com",
        "password": "password123",
        "name": "Traveller",
    })
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["role"] == "user"
    assert body["user"]["email"] == "traveller@example.com"
    assert "password_hash" not in body["user"]
    assert TokenService().verify(body["token"]).id == body["user"]["id"]

    r = await client.post(f"{prefix}/auth/login", json={
        "email": "traveller@example.com",
        "password": "password123",
    })
    assert r.status_code == 200
    token = r.json()["token"]
    principal = TokenService().verify(token)
    assert principal.role == Role.user
    assert principal.id == body["user"]["id"]

    r = await client.get(f"{prefix}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["name"] == "Traveller"


@pytest.mark.asyncio
async def test_register_duplicate_email_is_rejected(client: httpx.AsyncClient, create_user):
    await create_user(email="taken@example.com")
    r = await client.post("/api/auth/register", json={
        "email": "taken@example.com",
        "password": "password123",
        "name": "Someone",
    })
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "conflict"


@pytest.mark.asyncio
async def test_register_validation_error_lists_fields(client: httpx.AsyncClient):
    r = await client.post("/api/auth/register", json={"email": "nope", "password": "1", "name": ""})
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "validation_error"
    fields = {d["field"] for d in error["details"]}
    assert {"email", "password", "name"} <= fields


@pytest.mark.asyncio
async def test_login_with_wrong_password(client: httpx.AsyncClient, create_user):
    await create_user(email="someone@example.com")
    r = await client.post("/api/auth/login", json={
        "email": "someone@example.com",
        "password": "wrong-password",
    })
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_unknown_email(client: httpx.AsyncClient):
    r = await client.post("/api/auth/login", json={
        "email": "ghost@example.com",
        "password": "password123",
    })
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_without_token(client: httpx.AsyncClient):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "No token provided"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Bearer not-a-token", "Token abc", "Bearer"])
async def test_me_with_invalid_token(client: httpx.AsyncClient, header):
    r = await client.get("/api/auth/me", headers={"Authorization": header})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_error_body_carries_request_id(client: httpx.AsyncClient):
    r = await client.get("/api/auth/me")
    assert r.headers["X-Request-ID"]
    assert r.json()["request_id"] == r.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_social_login_creates_then_reuses_account(app, client: httpx.AsyncClient):
    profile = SocialProfile(email="social@example.com", name="Social User",
                            provider=Provider.google, provider_id="google-123")
    app.state.identity_providers = {Provider.google: FakeGoogle(profile)}

    r = await client.post("/api/auth/google", json={"credential": "good-credential"})
    assert r.status_code == 200
    first = r.json()["user"]
    assert first["provider"] == "google"
    assert first["role"] == "user"

    r = await client.post("/api/v2/auth/google", json={"credential": "good-credential"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == first["id"]


@pytest.mark.asyncio
async def test_social_login_links_existing_email_account(app, client: httpx.AsyncClient, create_user):
    user = await create_user(email="linked@example.com")
    profile = SocialProfile(email="linked@example.com", name="Linked",
                            provider=Provider.google, provider_id="google-456")
    app.state.identity_providers = {Provider.google: FakeGoogle(profile)}

    r = await client.post("/api/auth/google", json={"credential": "good-credential"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == user.id


@pytest.mark.asyncio
async def test_social_login_rejected_credential(app, client: httpx.AsyncClient):
    app.state.identity_providers = {Provider.google: FakeGoogle()}
    r = await client.post("/api/auth/google", json={"credential": "bad"})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Authentication failed"


@pytest.mark.asyncio
async def test_social_login_unconfigured_provider(app, client: httpx.AsyncClient):
    app.state.identity_providers = {}
    r = await client.post("/api/auth/apple", json={"credential": "anything"})
    assert r.status_code == 404
