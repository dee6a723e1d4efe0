"""Manual AutoRAG re-index trigger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from autorag_notes.clients.cloudflare import CloudflareClient
from autorag_notes.config import Settings
from autorag_notes.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


def _missing_configuration(settings: Settings) -> list[str]:
    missing = []
    if not settings.cloudflare_account_id:
        missing.append("CLOUDFLARE_ACCOUNT_ID")
    if not settings.cloudflare_api_token:
        missing.append("CLOUDFLARE_API_TOKEN")
    if not settings.autorag_id:
        missing.append("AUTORAG_ID")
    return missing


async def trigger_sync(
    settings: Settings,
    client: Optional[CloudflareClient],
    force: bool = False,
) -> dict[str, Any]:
    """Ask AutoRAG to rescan the bucket and queue changed files for indexing.

    Args:
        settings: Server settings (account, token and AutoRAG id).
        client: Cloudflare client; ``None`` when credentials are missing.
        force: Request a full resync.

    Returns:
        A payload with ``success`` and either sync details or the reason it
        failed. Never raises for upstream failures.
    """
    missing = _missing_configuration(settings)
    if missing or client is None:
        return {
            "success": False,
            "error": "Missing required environment variables",
            "message": (
                "AutoRAG sync requires CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_API_TOKEN, "
                "and AUTORAG_ID to be configured."
            ),
            "missing": missing,
            "configuration_guide": {
                "required_env_vars": [
                    "CLOUDFLARE_ACCOUNT_ID - Your Cloudflare account ID",
                    "CLOUDFLARE_API_TOKEN - API token with 'AutoRAG Write' permission",
                    "AUTORAG_ID - Your AutoRAG instance ID",
                ],
            },
        }

    logger.info(
        "Triggering AutoRAG sync for account %s, RAG ID %s%s",
        settings.cloudflare_account_id,
        settings.autorag_id,
        " (forced)" if force else "",
    )
    try:
        envelope = await client.sync(force=force)
    except UpstreamServiceError as exc:
        logger.error("AutoRAG sync failed: %s", exc)
        return {
            "success": False,
            "error": "AutoRAG sync request failed",
            "message": exc.message,
            "details": {
                "status": exc.status_code,
                "body": exc.body,
                "url": f"{client.autorag_url}/sync",
            },
            "troubleshooting": {
                "common_issues": [
                    "Invalid API token - ensure it has 'AutoRAG Write' permission",
                    "Wrong Account ID - verify from Cloudflare dashboard",
                    "Invalid AutoRAG ID - check your AutoRAG instance settings",
                    "Network connectivity issues",
                ],
            },
        }

    if not envelope.get("success"):
        return {
            "success": False,
            "error": "AutoRAG sync failed",
            "details": {
                "result": envelope.get("result"),
                "errors": envelope.get("errors"),
                "account_id": settings.cloudflare_account_id,
                "autorag_id": settings.autorag_id,
            },
            "message": "The sync request was accepted but AutoRAG reported errors",
        }

    return {
        "success": True,
        "message": "AutoRAG sync triggered successfully",
        "details": {
            "account_id": settings.cloudflare_account_id,
            "autorag_id": settings.autorag_id,
            "forced": force,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "result": envelope.get("result"),
        },
        "next_steps": [
            "Sync process has been queued and will run in the background",
            "Search results should reflect updates within a few minutes",
        ],
    }
