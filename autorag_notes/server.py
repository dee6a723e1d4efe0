"""FastMCP server initialization and tool registration."""

import logging
from typing import Optional

from mcp.server.auth.settings import AuthSettings, ClientRegistrationOptions, RevocationOptions
from mcp.server.fastmcp import FastMCP

from autorag_notes.auth import GoogleOAuthProvider, build_callback_handler
from autorag_notes.config import SETTINGS
from autorag_notes.constants import CALLBACK_PATH

# Initialize logger
logging.basicConfig(
    level=SETTINGS.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Personal note store with semantic search. Notes are private to the "
    "signed-in user. Use create_note to save, delete_note to remove by id, "
    "search_notes_simple / search_notes_advanced for ranked matches, "
    "ai_search_notes for an answer synthesized from your notes, and "
    "sync_autorag after bulk changes to refresh the index."
)

oauth_provider: Optional[GoogleOAuthProvider] = None
auth_settings: Optional[AuthSettings] = None

if SETTINGS.oauth_enabled:
    oauth_provider = GoogleOAuthProvider(SETTINGS)
    auth_settings = AuthSettings(
        issuer_url=SETTINGS.base_url,
        resource_server_url=SETTINGS.base_url,
        client_registration_options=ClientRegistrationOptions(enabled=True),
        revocation_options=RevocationOptions(enabled=True),
    )

# Initialize FastMCP server
mcp = FastMCP(
    "autorag_notes",
    instructions=INSTRUCTIONS,
    auth_server_provider=oauth_provider,
    auth=auth_settings,
    host=SETTINGS.host,
    port=SETTINGS.port,
)

if oauth_provider is not None:
    mcp.custom_route(CALLBACK_PATH, methods=["GET"])(build_callback_handler(oauth_provider))

# Tool modules are imported in __init__.py to register all @mcp.tool() decorators


def run_server():
    """Start the MCP server with the configured transport."""
    logger.info(
        "Starting AutoRAG Notes MCP Server (%s, oauth=%s)",
        SETTINGS.transport,
        "on" if oauth_provider else "off",
    )
    mcp.run(transport=SETTINGS.transport)


if __name__ == "__main__":
    run_server()
