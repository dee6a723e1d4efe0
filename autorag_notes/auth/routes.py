"""HTTP route for the Google redirect back to this server."""

from __future__ import annotations

import html
import logging
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from autorag_notes.auth.provider import GoogleOAuthProvider
from autorag_notes.exceptions import DomainNotAllowedError, OAuthCallbackError

logger = logging.getLogger(__name__)


def render_access_denied(error: DomainNotAllowedError) -> str:
    """HTML page shown when an account outside the allowlist signs in."""
    domains = ", ".join(html.escape(d) for d in error.allowed_domains)
    label = "domain" if len(error.allowed_domains) == 1 else "domains"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Access Denied</title>
  <style>
    body {{ font-family: system-ui, sans-serif; max-width: 480px; margin: 80px auto; color: #333; }}
    h1 {{ color: #c0392b; }}
    code {{ background: #f4f4f4; padding: 2px 4px; }}
  </style>
</head>
<body>
  <h1>Access Denied</h1>
  <p>Only accounts from the following {label} may use this server: <code>{domains}</code></p>
  <p>You signed in as <code>{html.escape(error.email)}</code>.</p>
  <p>Sign out of Google and try again with an allowed account.</p>
</body>
</html>"""


def build_callback_handler(
    provider: GoogleOAuthProvider,
) -> Callable[[Request], Awaitable[Response]]:
    """Create the ``GET /callback`` handler bound to ``provider``."""

    async def oauth_callback(request: Request) -> Response:
        params = request.query_params
        upstream_error = params.get("error")
        if upstream_error:
            logger.warning("Google returned an authorization error: %s", upstream_error)
            return PlainTextResponse(f"Authorization failed: {upstream_error}", status_code=400)

        try:
            redirect_to = await provider.handle_callback(params.get("state"), params.get("code"))
        except DomainNotAllowedError as exc:
            return HTMLResponse(render_access_denied(exc), status_code=exc.status_code)
        except OAuthCallbackError as exc:
            logger.error("OAuth callback failed: %s", exc)
            return PlainTextResponse(exc.message, status_code=exc.status_code)

        return RedirectResponse(redirect_to, status_code=302)

    return oauth_callback
