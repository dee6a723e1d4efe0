"""MCP OAuth authorization server that delegates sign-in to Google.

FastMCP serves ``/authorize``, ``/token``, ``/register`` and ``/revoke`` and calls
into :class:`GoogleOAuthProvider`. The flow is:

1. ``authorize`` parks the MCP client's request under a fresh state token and
   redirects the browser to Google.
2. Google redirects to ``/callback``; :meth:`GoogleOAuthProvider.handle_callback`
   exchanges the code, fetches the profile, enforces the domain allowlist and
   mints a single-use MCP authorization code bound to the verified identity.
3. The MCP client trades that code at ``/token`` for an access token (the
   grant); every tool call presents it and :meth:`identity_for` maps it back to
   the user.

All state is in memory and dies with the process.
"""

from __future__ import annotations

import logging
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import httpx
from mcp.server.auth.provider import (
    AccessToken,
    AuthorizationCode,
    AuthorizationParams,
    RefreshToken,
    TokenError,
    construct_redirect_uri,
)
from mcp.shared.auth import OAuthClientInformationFull, OAuthToken

from autorag_notes.auth.google import (
    build_authorize_url,
    check_domain,
    exchange_code,
    fetch_profile,
    identity_from_profile,
)
from autorag_notes.config import Settings
from autorag_notes.constants import (
    AUTHORIZATION_CODE_TTL,
    PENDING_STATE_TTL,
    REFRESH_TOKEN_TTL,
)
from autorag_notes.data_models import UserIdentity
from autorag_notes.exceptions import ConfigurationError, InvalidStateError, MissingCodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAuthorization:
    """An MCP authorization request waiting for the Google round trip."""

    client_id: str
    params: AuthorizationParams
    expires_at: float


class GoogleOAuthProvider:
    """In-memory ``OAuthAuthorizationServerProvider`` backed by Google sign-in."""

    def __init__(
        self,
        settings: Settings,
        http: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not settings.oauth_enabled:
            raise ConfigurationError(
                "Google OAuth requires GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET",
                missing=["GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"],
            )
        self.settings = settings
        self._http = http
        self._clock = clock
        self._clients: dict[str, OAuthClientInformationFull] = {}
        self._pending: dict[str, PendingAuthorization] = {}
        self._codes: dict[str, AuthorizationCode] = {}
        self._code_identities: dict[str, UserIdentity] = {}
        self._access_tokens: dict[str, AccessToken] = {}
        self._refresh_tokens: dict[str, RefreshToken] = {}
        self._identities: dict[str, UserIdentity] = {}
        # access token <-> refresh token issued together
        self._partners: dict[str, str] = {}

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                yield client

    # ── Client registration ──────────────────────────────────

    async def get_client(self, client_id: str) -> OAuthClientInformationFull | None:
        return self._clients.get(client_id)

    async def register_client(self, client_info: OAuthClientInformationFull) -> None:
        self._clients[client_info.client_id] = client_info
        logger.info("Registered client %s (%s)", client_info.client_id, client_info.client_name)

    # ── Authorization ────────────────────────────────────────

    def _purge_expired(self) -> None:
        """Drop pending Google round trips and MCP codes that can no longer be used."""
        now = self._clock()
        for state in [s for s, p in self._pending.items() if p.expires_at < now]:
            del self._pending[state]
        for code in [c for c, ac in self._codes.items() if ac.expires_at < now]:
            del self._codes[code]
            self._code_identities.pop(code, None)

    async def authorize(self, client: OAuthClientInformationFull, params: AuthorizationParams) -> str:
        self._purge_expired()
        state = secrets.token_urlsafe(32)
        self._pending[state] = PendingAuthorization(
            client_id=client.client_id,
            params=params,
            expires_at=self._clock() + PENDING_STATE_TTL,
        )
        domains = self.settings.allowed_domains
        return build_authorize_url(
            client_id=self.settings.google_client_id,
            redirect_uri=self.settings.callback_url,
            state=state,
            hosted_domain=domains[0] if len(domains) == 1 else None,
        )

    async def handle_callback(self, state: Optional[str], code: Optional[str]) -> str:
        """Complete the Google round trip and return the redirect back to the MCP client.

        Raises:
            InvalidStateError: Missing, unknown or expired ``state``.
            MissingCodeError: No authorization code.
            TokenExchangeError: Google rejected the code.
            ProfileFetchError: The profile could not be read.
            DomainNotAllowedError: The account is outside the allowlist.
        """
        if not state:
            raise InvalidStateError("Missing state parameter")
        pending = self._pending.pop(state, None)
        self._purge_expired()
        if pending is None or pending.expires_at < self._clock():
            raise InvalidStateError("Invalid or expired state parameter")
        if not code:
            raise MissingCodeError()

        async with self._http_client() as http:
            google_token = await exchange_code(
                http,
                code,
                client_id=self.settings.google_client_id,
                client_secret=self.settings.google_client_secret,
                redirect_uri=self.settings.callback_url,
            )
            profile = await fetch_profile(http, google_token)

        check_domain(profile, self.settings.allowed_domains)
        identity = identity_from_profile(profile, google_token)

        params = pending.params
        mcp_code = secrets.token_urlsafe(32)
        self._codes[mcp_code] = AuthorizationCode(
            code=mcp_code,
            scopes=params.scopes or [],
            expires_at=self._clock() + AUTHORIZATION_CODE_TTL,
            client_id=pending.client_id,
            code_challenge=params.code_challenge,
            redirect_uri=params.redirect_uri,
            redirect_uri_provided_explicitly=params.redirect_uri_provided_explicitly,
            resource=getattr(params, "resource", None),
        )
        self._code_identities[mcp_code] = identity
        logger.info("Verified %s for client %s", identity.email, pending.client_id)
        return construct_redirect_uri(str(params.redirect_uri), code=mcp_code, state=params.state)

    async def load_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: str
    ) -> AuthorizationCode | None:
        code = self._codes.get(authorization_code)
        if code is None or code.client_id != client.client_id:
            return None
        if code.expires_at < self._clock():
            self._codes.pop(authorization_code, None)
            self._code_identities.pop(authorization_code, None)
            return None
        return code

    async def exchange_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: AuthorizationCode
    ) -> OAuthToken:
        self._codes.pop(authorization_code.code, None)
        identity = self._code_identities.pop(authorization_code.code, None)
        if identity is None:
            raise TokenError("invalid_grant", "Authorization code has already been used")
        return self._issue_tokens(client.client_id, authorization_code.scopes, identity)

    # ── Grants ───────────────────────────────────────────────

    def _issue_tokens(self, client_id: str, scopes: list[str], identity: UserIdentity) -> OAuthToken:
        now = int(self._clock())
        ttl = self.settings.grant_ttl_seconds
        access = secrets.token_urlsafe(48)
        refresh = secrets.token_urlsafe(48)

        self._access_tokens[access] = AccessToken(
            token=access, client_id=client_id, scopes=scopes, expires_at=now + ttl
        )
        self._refresh_tokens[refresh] = RefreshToken(
            token=refresh, client_id=client_id, scopes=scopes, expires_at=now + REFRESH_TOKEN_TTL
        )
        self._identities[access] = identity
        self._identities[refresh] = identity
        self._partners[access] = refresh
        self._partners[refresh] = access

        logger.info("Issued grant for %s to client %s", identity.email, client_id)
        return OAuthToken(
            access_token=access,
            token_type="Bearer",
            expires_in=ttl,
            scope=" ".join(scopes) if scopes else None,
            refresh_token=refresh,
        )

    def _expired(self, expires_at: Optional[int]) -> bool:
        return expires_at is not None and expires_at < int(self._clock())

    def _forget(self, token: str) -> None:
        self._access_tokens.pop(token, None)
        self._refresh_tokens.pop(token, None)
        self._identities.pop(token, None)
        self._partners.pop(token, None)

    def _drop_grant(self, token: str) -> None:
        """Remove a token together with the token it was issued with."""
        partner = self._partners.get(token)
        self._forget(token)
        if partner is not None:
            self._forget(partner)

    async def load_access_token(self, token: str) -> AccessToken | None:
        access = self._access_tokens.get(token)
        if access is None:
            return None
        if self._expired(access.expires_at):
            # the paired refresh token stays usable for renewal
            self._forget(token)
            return None
        return access

    async def load_refresh_token(
        self, client: OAuthClientInformationFull, refresh_token: str
    ) -> RefreshToken | None:
        refresh = self._refresh_tokens.get(refresh_token)
        if refresh is None or refresh.client_id != client.client_id:
            return None
        if self._expired(refresh.expires_at):
            self._drop_grant(refresh_token)
            return None
        return refresh

    async def exchange_refresh_token(
        self,
        client: OAuthClientInformationFull,
        refresh_token: RefreshToken,
        scopes: list[str],
    ) -> OAuthToken:
        identity = self._identities.get(refresh_token.token)
        if refresh_token.token not in self._refresh_tokens or identity is None:
            raise TokenError("invalid_grant", "Refresh token is no longer valid")
        self._drop_grant(refresh_token.token)
        return self._issue_tokens(client.client_id, scopes or refresh_token.scopes, identity)

    async def revoke_token(self, token: AccessToken | RefreshToken) -> None:
        self._drop_grant(token.token)
        logger.info("Revoked grant for client %s", token.client_id)

    def identity_for(self, token: str) -> Optional[UserIdentity]:
        """The verified user behind a live access token."""
        access = self._access_tokens.get(token)
        if access is None or self._expired(access.expires_at):
            return None
        return self._identities.get(token)
