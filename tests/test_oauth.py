"""Tests for the Google exchange helpers and the MCP OAuth provider."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from mcp.server.auth.provider import AuthorizationParams, TokenError
from mcp.shared.auth import OAuthClientInformationFull
from pydantic import AnyUrl

from autorag_notes.auth.google import (
    build_authorize_url,
    check_domain,
    exchange_code,
    fetch_profile,
    identity_from_profile,
)
from autorag_notes.auth.provider import GoogleOAuthProvider
from autorag_notes.config import Settings
from autorag_notes.exceptions import (
    ConfigurationError,
    DomainNotAllowedError,
    InvalidStateError,
    MissingCodeError,
    ProfileFetchError,
    TokenExchangeError,
)

CLIENT_REDIRECT = "http://localhost:3000/callback"


class FakeGoogle:
    """Token and userinfo endpoints."""

    def __init__(self):
        self.profile = {"id": "108", "email": "alice@example.com", "name": "Alice", "hd": "example.com"}
        self.token_status = 200
        self.userinfo_status = 200
        self.token_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            self.token_requests.append(parse_qs(request.content.decode()))
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "g-access", "token_type": "Bearer"})
        if self.userinfo_status != 200:
            return httpx.Response(self.userinfo_status, text="nope")
        return httpx.Response(200, json=self.profile)


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def http(google):
    return httpx.AsyncClient(transport=httpx.MockTransport(google.handler))


@pytest.fixture
def settings():
    return Settings(
        google_client_id="cid",
        google_client_secret="csecret",
        google_hosted_domain="example.com",
        base_url="https://notes.example.com/",
    )


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def provider(settings, http, clock):
    return GoogleOAuthProvider(settings, http=http, clock=clock)


@pytest.fixture
def client_info():
    return OAuthClientInformationFull(client_id="mcp-client", redirect_uris=[AnyUrl(CLIENT_REDIRECT)])


@pytest.fixture
def auth_params():
    return AuthorizationParams(
        state="client-state",
        scopes=[],
        code_challenge="challenge",
        redirect_uri=AnyUrl(CLIENT_REDIRECT),
        redirect_uri_provided_explicitly=True,
    )


def _query(url):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestGoogleHelpers:
    def test_authorize_url(self):
        url = build_authorize_url("cid", "https://notes.example.com/callback", "st", hosted_domain="example.com")
        query = _query(url)
        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert query == {
            "client_id": "cid",
            "response_type": "code",
            "redirect_uri": "https://notes.example.com/callback",
            "scope": "email profile openid",
            "state": "st",
            "hd": "example.com",
        }

    def test_authorize_url_without_domain(self):
        assert "hd" not in _query(build_authorize_url("cid", "https://x/callback", "st"))

    @pytest.mark.asyncio
    async def test_exchange_code_sends_form(self, http, google):
        token = await exchange_code(http, "code-1", "cid", "csecret", "https://x/callback")
        assert token == "g-access"
        sent = google.token_requests[0]
        assert sent["grant_type"] == ["authorization_code"]
        assert sent["client_secret"] == ["csecret"]
        assert sent["redirect_uri"] == ["https://x/callback"]

    @pytest.mark.asyncio
    async def test_exchange_code_failure(self, http, google):
        google.token_status = 400
        with pytest.raises(TokenExchangeError) as excinfo:
            await exchange_code(http, "bad", "cid", "csecret", "https://x/callback")
        assert excinfo.value.status_code == 500
        assert excinfo.value.details == {"status": 400}

    @pytest.mark.asyncio
    async def test_exchange_requires_code(self, http):
        with pytest.raises(MissingCodeError):
            await exchange_code(http, "", "cid", "csecret", "https://x/callback")

    @pytest.mark.asyncio
    async def test_profile_failure(self, http, google):
        google.userinfo_status = 401
        with pytest.raises(ProfileFetchError):
            await fetch_profile(http, "g-access")

    def test_check_domain(self):
        check_domain({"email": "a@example.com", "hd": "Example.com"}, ["example.com"])
        check_domain({"email": "a@gmail.com"}, [])
        with pytest.raises(DomainNotAllowedError) as excinfo:
            check_domain({"email": "a@gmail.com"}, ["example.com"])
        assert excinfo.value.domain is None
        assert excinfo.value.status_code == 403

    def test_identity_from_profile(self):
        identity = identity_from_profile({"id": "7", "email": "a@b.c"}, "tok")
        assert (identity.subject, identity.email, identity.name) == ("7", "a@b.c", "a@b.c")
        assert "tok" not in repr(identity)


class TestProvider:
    def test_requires_google_credentials(self):
        with pytest.raises(ConfigurationError):
            GoogleOAuthProvider(Settings(google_client_id=None, google_client_secret=None))

    @pytest.mark.asyncio
    async def test_authorize_redirects_to_google(self, provider, client_info, auth_params):
        url = await provider.authorize(client_info, auth_params)
        query = _query(url)
        assert query["redirect_uri"] == "https://notes.example.com/callback"
        assert query["hd"] == "example.com"
        assert query["state"] != "client-state"

    @pytest.mark.asyncio
    async def test_full_flow(self, provider, client_info, auth_params):
        await provider.register_client(client_info)
        assert await provider.get_client("mcp-client") == client_info

        state = _query(await provider.authorize(client_info, auth_params))["state"]
        redirect = await provider.handle_callback(state, "google-code")

        assert redirect.startswith(CLIENT_REDIRECT + "?")
        query = _query(redirect)
        assert query["state"] == "client-state"

        code = await provider.load_authorization_code(client_info, query["code"])
        assert code.code_challenge == "challenge"

        token = await provider.exchange_authorization_code(client_info, code)
        assert token.token_type.lower() == "bearer"
        assert token.expires_in == 86400
        identity = provider.identity_for(token.access_token)
        assert identity.email == "alice@example.com"
        assert identity.access_token == "g-access"
        assert await provider.load_access_token(token.access_token) is not None

        with pytest.raises(TokenError):
            await provider.exchange_authorization_code(client_info, code)

    @pytest.mark.asyncio
    async def test_state_is_single_use(self, provider, client_info, auth_params):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        await provider.handle_callback(state, "google-code")
        with pytest.raises(InvalidStateError):
            await provider.handle_callback(state, "google-code")

    @pytest.mark.asyncio
    async def test_unknown_or_missing_state(self, provider):
        with pytest.raises(InvalidStateError, match="Missing state"):
            await provider.handle_callback(None, "google-code")
        with pytest.raises(InvalidStateError):
            await provider.handle_callback("forged", "google-code")

    @pytest.mark.asyncio
    async def test_expired_state(self, provider, client_info, auth_params, clock):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        clock.now += 601
        with pytest.raises(InvalidStateError):
            await provider.handle_callback(state, "google-code")

    @pytest.mark.asyncio
    async def test_missing_code(self, provider, client_info, auth_params):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        with pytest.raises(MissingCodeError):
            await provider.handle_callback(state, None)

    @pytest.mark.asyncio
    async def test_wrong_domain_gets_no_code(self, provider, client_info, auth_params, google):
        google.profile = {"id": "9", "email": "eve@gmail.com", "name": "Eve"}
        state = _query(await provider.authorize(client_info, auth_params))["state"]

        with pytest.raises(DomainNotAllowedError) as excinfo:
            await provider.handle_callback(state, "google-code")

        assert excinfo.value.email == "eve@gmail.com"
        assert provider._codes == {}

    @pytest.mark.asyncio
    async def test_token_exchange_failure(self, provider, client_info, auth_params, google):
        google.token_status = 401
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        with pytest.raises(TokenExchangeError):
            await provider.handle_callback(state, "google-code")

    async def _grant(self, provider, client_info, auth_params):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        code = _query(await provider.handle_callback(state, "google-code"))["code"]
        loaded = await provider.load_authorization_code(client_info, code)
        return await provider.exchange_authorization_code(client_info, loaded)

    @pytest.mark.asyncio
    async def test_grant_expires(self, provider, client_info, auth_params, clock):
        token = await self._grant(provider, client_info, auth_params)
        clock.now += 86401
        assert provider.identity_for(token.access_token) is None
        assert await provider.load_access_token(token.access_token) is None

    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)

        refresh = await provider.load_refresh_token(client_info, token.refresh_token)
        renewed = await provider.exchange_refresh_token(client_info, refresh, [])

        assert renewed.access_token != token.access_token
        assert provider.identity_for(renewed.access_token).email == "alice@example.com"
        assert await provider.load_refresh_token(client_info, token.refresh_token) is None

    @pytest.mark.asyncio
    async def test_revoke(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)
        access = await provider.load_access_token(token.access_token)

        await provider.revoke_token(access)

        assert provider.identity_for(token.access_token) is None

    @pytest.mark.asyncio
    async def test_code_bound_to_client(self, provider, client_info, auth_params):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        code = _query(await provider.handle_callback(state, "google-code"))["code"]
        intruder = OAuthClientInformationFull(client_id="other", redirect_uris=[AnyUrl(CLIENT_REDIRECT)])
        assert await provider.load_authorization_code(intruder, code) is None

    @pytest.mark.asyncio
    async def test_abandoned_logins_are_purged(self, provider, client_info, auth_params, clock):
        for _ in range(1000):
            await provider.authorize(client_info, auth_params)
        assert len(provider._pending) == 1000

        clock.now += 601
        await provider.authorize(client_info, auth_params)

        assert len(provider._pending) == 1

    @pytest.mark.asyncio
    async def test_unredeemed_codes_are_purged(self, provider, client_info, auth_params, clock):
        state = _query(await provider.authorize(client_info, auth_params))["state"]
        await provider.handle_callback(state, "google-code")
        assert len(provider._codes) == 1

        clock.now += 301
        await provider.authorize(client_info, auth_params)

        assert provider._codes == {}
        assert provider._code_identities == {}

    @pytest.mark.asyncio
    async def test_callback_purges_expired_codes(self, provider, client_info, auth_params, clock):
        stale = _query(await provider.authorize(client_info, auth_params))["state"]
        await provider.handle_callback(stale, "google-code")
        fresh = _query(await provider.authorize(client_info, auth_params))["state"]

        clock.now += 301
        redirect = await provider.handle_callback(fresh, "google-code")

        assert list(provider._codes) == [_query(redirect)["code"]]

    @pytest.mark.asyncio
    async def test_refresh_retires_previous_access_token(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)

        refresh = await provider.load_refresh_token(client_info, token.refresh_token)
        renewed = await provider.exchange_refresh_token(client_info, refresh, [])

        assert await provider.load_access_token(token.access_token) is None
        assert provider.identity_for(token.access_token) is None
        assert await provider.load_access_token(renewed.access_token) is not None

    @pytest.mark.asyncio
    async def test_refresh_token_is_single_use(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)
        refresh = await provider.load_refresh_token(client_info, token.refresh_token)
        await provider.exchange_refresh_token(client_info, refresh, [])

        with pytest.raises(TokenError):
            await provider.exchange_refresh_token(client_info, refresh, [])

    @pytest.mark.asyncio
    async def test_revoking_access_token_drops_refresh_token(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)

        await provider.revoke_token(await provider.load_access_token(token.access_token))

        assert await provider.load_refresh_token(client_info, token.refresh_token) is None

    @pytest.mark.asyncio
    async def test_revoking_refresh_token_drops_access_token(self, provider, client_info, auth_params):
        token = await self._grant(provider, client_info, auth_params)

        await provider.revoke_token(await provider.load_refresh_token(client_info, token.refresh_token))

        assert await provider.load_access_token(token.access_token) is None
        assert provider.identity_for(token.access_token) is None

    @pytest.mark.asyncio
    async def test_expired_access_token_can_still_be_refreshed(self, provider, client_info, auth_params, clock):
        token = await self._grant(provider, client_info, auth_params)
        clock.now += 86401
        assert await provider.load_access_token(token.access_token) is None

        refresh = await provider.load_refresh_token(client_info, token.refresh_token)
        renewed = await provider.exchange_refresh_token(client_info, refresh, [])

        assert provider.identity_for(renewed.access_token).email == "alice@example.com"
