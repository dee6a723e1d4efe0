"""Google sign-in and the MCP OAuth grant store."""

from .provider import GoogleOAuthProvider, PendingAuthorization
from .routes import build_callback_handler, render_access_denied

__all__ = [
    "GoogleOAuthProvider",
    "PendingAuthorization",
    "build_callback_handler",
    "render_access_denied",
]
