"""Search operations over a user's notes.

All three searches scope the managed search endpoint to the caller's namespace
with the tenant filter and never return metadata sidecars.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from autorag_notes.clients.cloudflare import CloudflareClient
from autorag_notes.constants import (
    DAY_MS,
    FALLBACK_LIST_LIMIT,
    MAX_SEARCH_RESULTS,
    RESULT_PREVIEW_CHARS,
    SCORE_THRESHOLD,
)
from autorag_notes.core.filters import (
    Filter,
    build_advanced_filter,
    build_user_filter,
    filter_note_results,
    folder_of,
    matches_filter,
)
from autorag_notes.core.metadata import to_epoch_ms
from autorag_notes.data_models import NotesContext
from autorag_notes.exceptions import ConfigurationError, StorageError, UpstreamServiceError
from autorag_notes.storage.paths import is_sidecar_key, metadata_path, user_folder

logger = logging.getLogger(__name__)

_NOTE_ID_PATTERN = re.compile(r"/([^/]+)\.md$")


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _require_search(context: NotesContext) -> CloudflareClient:
    if context.search is None:
        raise ConfigurationError(
            "AutoRAG search requires CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN",
            missing=["CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN"],
        )
    return context.search


def _search_params(query: str, limit: int, filters: Filter) -> dict[str, Any]:
    return {
        "query": query,
        "max_num_results": min(limit, MAX_SEARCH_RESULTS),
        "rewrite_query": True,
        "ranking_options": {"score_threshold": SCORE_THRESHOLD},
        "filters": filters,
    }


def _time_bounds(
    since_days: Optional[int],
    until_days: Optional[int],
    now: Optional[datetime],
) -> tuple[Optional[int], Optional[int]]:
    """Convert "last N days" / "older than N days" into epoch-ms bounds."""
    now_ms = to_epoch_ms(now or datetime.now(timezone.utc))
    since = now_ms - since_days * DAY_MS if since_days else None
    until = now_ms - until_days * DAY_MS if until_days else None
    return since, until


def _truncate(text: str) -> str:
    suffix = "..." if len(text) > RESULT_PREVIEW_CHARS else ""
    return text[:RESULT_PREVIEW_CHARS] + suffix


def content_preview(result: dict[str, Any]) -> str:
    """First chunk of a search result's content, trimmed for display.

    AutoRAG returns ``content`` as a list of ``{"id", "type", "text"}`` chunks;
    plain string ``content`` and a top-level ``text`` are accepted as well.
    """
    content = result.get("content")
    if isinstance(content, list):
        if content:
            first = content[0]
            if isinstance(first, dict) and isinstance(first.get("text"), str):
                return _truncate(first["text"])
    elif isinstance(content, str) and content:
        return _truncate(content)
    elif isinstance(result.get("text"), str):
        return _truncate(result["text"])
    return "No content available"


async def _load_sidecar(context: NotesContext, result: dict[str, Any]) -> Optional[dict[str, Any]]:
    match = _NOTE_ID_PATTERN.search(str(result.get("filename") or ""))
    if not match:
        return None
    # Sidecars are always read from the caller's own namespace.
    key = metadata_path(context.user.email, match.group(1))
    try:
        sidecar = await context.store.get(key)
        if sidecar is None:
            return None
        data = sidecar.json()
    except (StorageError, ValueError) as exc:
        logger.warning("Failed to fetch sidecar metadata '%s': %s", key, exc)
        return None
    return data if isinstance(data, dict) else None


async def enrich_results_with_metadata(
    context: NotesContext, results: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Attach each note's sidecar as ``enriched_metadata`` where one can be read."""
    sidecars = await asyncio.gather(*(_load_sidecar(context, result) for result in results))
    enriched = []
    for result, sidecar in zip(results, sidecars):
        enriched.append({**result, "enriched_metadata": sidecar} if sidecar else result)
    return enriched


async def _fallback_search(
    context: NotesContext,
    query: str,
    filters: Filter,
) -> list[dict[str, Any]]:
    """Unranked title scan of the caller's namespace."""
    listed = await context.store.list(user_folder(context.user.email), limit=FALLBACK_LIST_LIMIT)
    needle = query.lower()
    results = []
    for info in listed:
        if is_sidecar_key(info.key):
            continue
        metadata = info.custom_metadata
        if needle not in metadata.get("title", "").lower():
            continue
        attributes = {
            "folder": folder_of(info.key),
            "timestamp": metadata.get("created_timestamp"),
        }
        # Listing is already prefix-scoped; only the timestamp clauses can reject here.
        time_clauses = [f for f in filters["filters"] if f.get("key") == "timestamp"]
        if time_clauses and not matches_filter({"type": "and", "filters": time_clauses}, attributes):
            continue
        results.append({"key": info.key, "metadata": dict(metadata), "score": 1.0})
    return results


# ==============================================================================
# SEARCH OPERATIONS
# ==============================================================================


async def search_simple(context: NotesContext, query: str, limit: int = 10) -> dict[str, Any]:
    """Semantic search returning full results from the caller's notes.

    Returns:
        The AutoRAG results minus sidecar entries, with total and filtered
        counts; or ``{"success": false, ...}`` if the search service failed.
    """
    user = context.user.email
    filters = build_user_filter(user)
    try:
        response = await _require_search(context).search(_search_params(query, limit, filters))
    except (UpstreamServiceError, ConfigurationError) as exc:
        logger.error("Simple search failed for %s: %s", user, exc)
        return {
            "success": False,
            "error": "Search failed",
            "message": f"Search error: {exc.message}",
            "details": exc.details,
        }

    note_results = filter_note_results(response["data"])
    return {
        "user_folder": user_folder(user),
        "search_query": response["search_query"],
        "total_results": len(response["data"]),
        "filtered_results": len(note_results),
        "results": note_results,
        "debug": {"applied_filter": filters},
    }


async def search_advanced(
    context: NotesContext,
    query: str,
    limit: int = 10,
    since_days: Optional[int] = None,
    until_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Semantic search with optional time window and sidecar enrichment.

    Args:
        context: Request context.
        query: Search text.
        limit: Maximum results (capped at 50).
        since_days: Only notes from the last N days.
        until_days: Only notes older than N days.
        now: Reference time for the day offsets; defaults to the current time.

    Returns:
        Condensed results with previews and sidecar metadata. When the search
        service is unavailable, the result of a title scan over the caller's
        namespace, marked ``fallback: true``.
    """
    user = context.user.email
    since_timestamp, until_timestamp = _time_bounds(since_days, until_days, now)
    filters = build_advanced_filter(user, since_timestamp, until_timestamp)
    logger.debug("Advanced search filters for %s: %s", user, filters)

    try:
        response = await _require_search(context).search(_search_params(query, limit, filters))
    except (UpstreamServiceError, ConfigurationError) as exc:
        logger.warning("Advanced search unavailable for %s, scanning titles instead: %s", user, exc)
        matches = await _fallback_search(context, query, filters)
        return {
            "results": matches[:limit],
            "total": len(matches),
            "fallback": True,
            "filters_applied": {"since_days": since_days, "until_days": until_days},
            "error": exc.message,
        }

    enriched = await enrich_results_with_metadata(context, filter_note_results(response["data"]))
    return {
        "user_folder": user_folder(user),
        "search_query": response["search_query"],
        "filters_applied": {
            "since_days": since_days or "all time",
            "until_days": until_days or "all time",
        },
        "total_results": len(enriched),
        "results": [
            {
                "filename": result.get("filename"),
                "score": result.get("score"),
                "metadata": result.get("metadata", result.get("attributes")),
                "enriched_metadata": result.get("enriched_metadata"),
                "content_preview": content_preview(result),
            }
            for result in enriched
        ],
    }


async def ai_search(
    context: NotesContext,
    query: str,
    limit: int = 5,
    since_days: Optional[int] = None,
    until_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> str:
    """Natural-language answer synthesized from the caller's notes.

    Returns:
        The prose answer, followed by a note naming any time filters applied.
        On failure, an error message in prose.
    """
    user = context.user.email
    since_timestamp, until_timestamp = _time_bounds(since_days, until_days, now)
    filters = build_advanced_filter(user, since_timestamp, until_timestamp)

    try:
        response = await _require_search(context).ai_search(_search_params(query, limit, filters))
    except (UpstreamServiceError, ConfigurationError) as exc:
        logger.error("AutoRAG AI search failed for %s: %s", user, exc)
        return (
            f"Search error: {exc.message}\n\n"
            "Note: AutoRAG may need time to index newly created documents. "
            "Try again in a few minutes."
        )

    answer = response.get("response") or "No relevant information found in your notes."
    if since_days or until_days:
        applied = []
        if since_days:
            applied.append(f"from the last {since_days} days")
        if until_days:
            applied.append(f"older than {until_days} days")
        answer += f"\n\n*Note: This answer is based on notes filtered by {', '.join(applied)}.*"
    return answer
