"""Search index maintenance MCP tool."""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from autorag_notes.config import SETTINGS
from autorag_notes.core.sync_operations import trigger_sync
from autorag_notes.models import SyncInput
from autorag_notes.server import mcp
from autorag_notes.session import get_cloudflare_client, get_user_identity


@mcp.tool()
async def sync_autorag(
    force: bool = False,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Ask the search index to rescan stored notes.

    New notes are picked up automatically within minutes; call this after
    bulk changes or when a fresh note is missing from search results.

    Args:
        force (bool): Request a full resync. Default: false.

    Returns:
        {"success": true, "message": str, "details": {...}, "next_steps": [...]}
        or {"success": false, "error": str, ...} with troubleshooting hints.
    """
    params = SyncInput(force=force)
    get_user_identity()  # signed-in users only
    return await trigger_sync(SETTINGS, get_cloudflare_client(), force=params.force)
