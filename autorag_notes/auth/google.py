"""Google OAuth 2.0 authorization-code exchange."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from autorag_notes.constants import (
    GOOGLE_AUTHORIZE_URL,
    GOOGLE_SCOPE,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
)
from autorag_notes.data_models import UserIdentity
from autorag_notes.exceptions import (
    DomainNotAllowedError,
    MissingCodeError,
    ProfileFetchError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    state: str,
    hosted_domain: Optional[str] = None,
    upstream_url: str = GOOGLE_AUTHORIZE_URL,
) -> str:
    """Google consent-screen URL for the authorization-code flow.

    ``hosted_domain`` only pre-selects the account chooser; the domain is
    enforced separately by :func:`check_domain` after the profile is fetched.
    """
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": GOOGLE_SCOPE,
        "state": state,
    }
    if hosted_domain:
        params["hd"] = hosted_domain
    return f"{upstream_url}?{urlencode(params)}"


async def exchange_code(
    http: httpx.AsyncClient,
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    upstream_url: str = GOOGLE_TOKEN_URL,
) -> str:
    """Trade an authorization code for a Google access token.

    Raises:
        MissingCodeError: If ``code`` is empty.
        TokenExchangeError: If the token endpoint fails or omits the token.
    """
    if not code:
        raise MissingCodeError()

    try:
        response = await http.post(
            upstream_url,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        logger.error("Token exchange request failed: %s", exc)
        raise TokenExchangeError() from exc

    if response.is_error:
        logger.error("Token exchange returned HTTP %d: %s", response.status_code, response.text[:200])
        raise TokenExchangeError(status=response.status_code)

    try:
        access_token = response.json().get("access_token")
    except ValueError as exc:
        raise TokenExchangeError("Token endpoint returned invalid JSON") from exc
    if not access_token:
        raise TokenExchangeError("Token endpoint response did not include an access token")
    return access_token


async def fetch_profile(
    http: httpx.AsyncClient,
    access_token: str,
    upstream_url: str = GOOGLE_USERINFO_URL,
) -> dict[str, Any]:
    """Fetch the signed-in user's Google profile (``id``, ``email``, ``name``, ``hd``).

    Raises:
        ProfileFetchError: If the userinfo endpoint fails or returns no email.
    """
    try:
        response = await http.get(upstream_url, headers={"Authorization": f"Bearer {access_token}"})
    except httpx.HTTPError as exc:
        logger.error("Failed to fetch user info: %s", exc)
        raise ProfileFetchError() from exc

    if response.is_error:
        logger.error("Failed to fetch user info: HTTP %d %s", response.status_code, response.text[:200])
        raise ProfileFetchError(status=response.status_code)

    try:
        profile = response.json()
    except ValueError as exc:
        raise ProfileFetchError("User info endpoint returned invalid JSON") from exc
    if not isinstance(profile, dict) or not profile.get("email"):
        raise ProfileFetchError("User info did not include an email address")
    return profile


def check_domain(profile: dict[str, Any], allowed_domains: list[str]) -> None:
    """Enforce the domain allowlist against the profile's ``hd`` claim.

    Raises:
        DomainNotAllowedError: If an allowlist is configured and the profile's
            hosted domain is missing or not in it.
    """
    if not allowed_domains:
        return
    domain = (profile.get("hd") or "").lower()
    if domain not in allowed_domains:
        logger.warning("Rejected sign-in from %s (domain %r)", profile.get("email"), domain or None)
        raise DomainNotAllowedError(
            email=str(profile.get("email", "")),
            allowed_domains=allowed_domains,
            domain=domain or None,
        )


def identity_from_profile(profile: dict[str, Any], access_token: str) -> UserIdentity:
    email = str(profile["email"])
    return UserIdentity(
        subject=str(profile.get("id") or email),
        email=email,
        name=str(profile.get("name") or email),
        access_token=access_token,
    )
