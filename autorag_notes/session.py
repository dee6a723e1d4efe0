"""Per-request context resolution: verified user, object store and search client."""

import logging
from typing import Optional

from mcp.server.auth.middleware.auth_context import get_access_token
from mcp.server.fastmcp import Context

from autorag_notes.clients.cloudflare import CloudflareClient
from autorag_notes.config import SETTINGS
from autorag_notes.data_models import NotesContext, UserIdentity
from autorag_notes.exceptions import AuthenticationRequiredError, ConfigurationError
from autorag_notes.server import oauth_provider
from autorag_notes.storage.object_store import LocalObjectStore, ObjectStore

logger = logging.getLogger(__name__)

# Process-wide clients, created on first use
_OBJECT_STORE: Optional[ObjectStore] = None
_CLOUDFLARE_CLIENT: Optional[CloudflareClient] = None


def get_object_store() -> ObjectStore:
    """Return the configured object store, creating it on first use.

    Raises:
        ConfigurationError: If ``STORAGE_BACKEND=r2`` and no bucket is configured.
    """
    global _OBJECT_STORE
    if _OBJECT_STORE is None:
        if SETTINGS.storage_backend == "r2":
            if not SETTINGS.r2_bucket:
                raise ConfigurationError("R2 storage requires R2_BUCKET", missing=["R2_BUCKET"])
            # Imported lazily so the local backend never loads boto3
            from autorag_notes.storage.s3_store import S3ObjectStore

            _OBJECT_STORE = S3ObjectStore.from_settings(
                bucket=SETTINGS.r2_bucket,
                endpoint_url=SETTINGS.r2_endpoint_url,
                access_key_id=SETTINGS.r2_access_key_id,
                secret_access_key=SETTINGS.r2_secret_access_key,
                region=SETTINGS.r2_region,
            )
        else:
            _OBJECT_STORE = LocalObjectStore(SETTINGS.storage_path)
    return _OBJECT_STORE


def get_cloudflare_client() -> Optional[CloudflareClient]:
    """Return the Cloudflare client, or ``None`` when credentials are not configured."""
    global _CLOUDFLARE_CLIENT
    if _CLOUDFLARE_CLIENT is None and SETTINGS.cloudflare_account_id and SETTINGS.cloudflare_api_token:
        _CLOUDFLARE_CLIENT = CloudflareClient(
            account_id=SETTINGS.cloudflare_account_id,
            api_token=SETTINGS.cloudflare_api_token,
            autorag_id=SETTINGS.autorag_id,
        )
    return _CLOUDFLARE_CLIENT


def get_user_identity() -> UserIdentity:
    """Resolve the verified user for the current request.

    With OAuth enabled the bearer grant on the request is mapped back to the
    identity recorded at sign-in. Without OAuth, ``DEV_USER_EMAIL`` is used.

    Raises:
        AuthenticationRequiredError: If no identity can be established.
    """
    if oauth_provider is not None:
        access = get_access_token()
        identity = oauth_provider.identity_for(access.token) if access else None
        if identity is None:
            raise AuthenticationRequiredError("No valid grant on this request; sign in again")
        return identity

    if SETTINGS.dev_user_email:
        email = SETTINGS.dev_user_email
        return UserIdentity(subject=email, email=email, name=email)

    raise AuthenticationRequiredError(
        "Authentication required: configure Google OAuth or set DEV_USER_EMAIL"
    )


def resolve_context(ctx: Optional[Context] = None) -> NotesContext:
    """Build the :class:`NotesContext` for a tool invocation.

    Args:
        ctx: The request context supplied by FastMCP. Identity comes from the
            request's bearer grant, not from the context object.

    Returns:
        Context carrying the caller's identity, the object store and the
        search client (``None`` when Cloudflare is not configured).
    """
    user = get_user_identity()
    logger.debug("Resolved %s for %s", user.email, "request" if ctx is not None else "direct call")
    return NotesContext(user=user, store=get_object_store(), search=get_cloudflare_client())
