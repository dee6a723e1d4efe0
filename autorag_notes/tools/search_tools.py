"""Search MCP tools.

This module provides MCP tool wrappers for searching the caller's notes:
- Simple semantic search (full results)
- Advanced search with time window and metadata enrichment
- AI answer synthesized from the matching notes

All tools delegate to core operations in autorag_notes.core.search_operations.
Every search is confined to the signed-in user's notes.
"""
from __future__ import annotations

from typing import Any, Optional

from mcp.server.fastmcp import Context

from autorag_notes.core import search_operations
from autorag_notes.models import (
    AdvancedSearchInput,
    AISearchInput,
    DayCount,
    SearchLimit,
    SimpleSearchInput,
)
from autorag_notes.server import mcp
from autorag_notes.session import resolve_context


@mcp.tool()
async def search_notes_simple(
    query: str,
    limit: SearchLimit = 10,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Semantic search over your notes, returning full search results.

    Args:
        query (str): What to look for.
        limit (int): Maximum results, 1-50. Default: 10.

    Returns:
        {
            "user_folder": str,
            "search_query": str,     # query as rewritten by the search service
            "total_results": int,
            "filtered_results": int, # after removing metadata records
            "results": [...],
            "debug": {"applied_filter": {...}}
        }
        or {"success": false, "error": "Search failed", ...}

    Examples:
        - Use when: Need raw matches with full chunk content
        - Don't use: Need dates or tags → Use search_notes_advanced()
        - Don't use: Want an answer, not documents → Use ai_search_notes()
    """
    params = SimpleSearchInput(query=query, limit=limit)
    context = resolve_context(ctx)
    return await search_operations.search_simple(context, params.query, limit=params.limit)


@mcp.tool()
async def search_notes_advanced(
    query: str,
    limit: SearchLimit = 10,
    since_days: Optional[DayCount] = None,
    until_days: Optional[DayCount] = None,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Semantic search with an optional time window and note metadata.

    Each result carries a content preview and the note's metadata record
    (title, type, tags, links). If the search service is unavailable, falls
    back to matching note titles and marks the response with "fallback": true.

    Args:
        query (str): What to look for.
        limit (int): Maximum results, 1-50. Default: 10.
        since_days (int, optional): Only notes from the last N days.
        until_days (int, optional): Only notes older than N days.

    Returns:
        {
            "user_folder": str,
            "search_query": str,
            "filters_applied": {"since_days": ..., "until_days": ...},
            "total_results": int,
            "results": [{"filename", "score", "metadata",
                         "enriched_metadata", "content_preview"}, ...]
        }

    Examples:
        - Use when: "What did I write this week about X?" → since_days=7
        - Use when: Need titles, tags or creation dates of matches
    """
    params = AdvancedSearchInput(
        query=query, limit=limit, since_days=since_days, until_days=until_days
    )
    context = resolve_context(ctx)
    return await search_operations.search_advanced(
        context,
        params.query,
        limit=params.limit,
        since_days=params.since_days,
        until_days=params.until_days,
    )


@mcp.tool()
async def ai_search_notes(
    query: str,
    limit: SearchLimit = 5,
    since_days: Optional[DayCount] = None,
    until_days: Optional[DayCount] = None,
    ctx: Context | None = None,
) -> str:
    """Ask a question and get an answer written from your notes.

    Args:
        query (str): The question.
        limit (int): Maximum notes to draw from, 1-50. Default: 5.
        since_days (int, optional): Only notes from the last N days.
        until_days (int, optional): Only notes older than N days.

    Returns:
        The answer as text. When a time window was applied, a closing note
        says so. Errors are reported as text as well.

    Examples:
        - Use when: "What did we decide about pricing?"
        - Don't use: Need the notes themselves → Use search_notes_advanced()
    """
    params = AISearchInput(
        query=query, limit=limit, since_days=since_days, until_days=until_days
    )
    context = resolve_context(ctx)
    return await search_operations.ai_search(
        context,
        params.query,
        limit=params.limit,
        since_days=params.since_days,
        until_days=params.until_days,
    )
