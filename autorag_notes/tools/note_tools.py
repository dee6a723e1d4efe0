"""Note management MCP tools.

This module provides MCP tool wrappers for:
- Creating a note (markdown body plus metadata sidecar)
- Deleting a note by id

All tools delegate to core operations in autorag_notes.core.note_operations.
"""
from __future__ import annotations

from typing import Any, Optional

from mcp.server.fastmcp import Context

from autorag_notes.core import note_operations
from autorag_notes.models import CreateNoteInput, DeleteNoteInput, NoteType
from autorag_notes.server import mcp
from autorag_notes.session import resolve_context


# ==============================================================================
# CREATE OPERATIONS
# ==============================================================================

@mcp.tool()
async def create_note(
    text: str,
    title: Optional[str] = None,
    note_type: NoteType = "other",
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Create a note in your personal note store.

    Saves the markdown text together with a metadata record (title, word
    count, #tags, links). The note becomes searchable once the search index
    has picked it up, usually within a few minutes.

    Args:
        text (str): Note body in markdown.
        title (str, optional): Title; generated from the note type and the
            first sentence when omitted, e.g. "Task: Buy milk".
        note_type (str): One of meeting, idea, task, diary, code, other.
            Default: other.

    Returns:
        {
            "id": str,          # UUID, used by delete_note
            "title": str,
            "metadata": {...},  # created_at, word_count, char_count, ...
            "storage": {"note": str, "sidecar": str}
        }

    Examples:
        - Use when: User asks to "remember", "save" or "jot down" something
        - Use when: Capturing meeting notes, ideas, tasks or snippets
        - Don't use: Updating a note → delete it and create a new one

    Error Handling:
        - ValidationError: note_type not one of the allowed values
        - Storage failure → Error; nothing is left half-written
    """
    params = CreateNoteInput(text=text, title=title, note_type=note_type)
    context = resolve_context(ctx)
    return await note_operations.create_note(
        context, params.text, title=params.title, note_type=params.note_type
    )


# ==============================================================================
# DELETE OPERATIONS
# ==============================================================================

@mcp.tool()
async def delete_note(
    note_id: str,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Permanently delete a note and its metadata.

    Always confirm with the user before calling; deletion cannot be undone.

    Args:
        note_id (str): The note's UUID (from create_note or a search result).

    Returns:
        Success: {"success": true, "deleted_note": {"id", "title", "user"},
                  "files_deleted": [...], "message": str}
        Not found: {"success": false, "error": "Note not found", ...}
        Partial: {"success": false, "error": "Partial deletion",
                  "files_deleted": [...], "files_failed": [...]}

    Error Handling:
        - ValidationError: note_id is not a UUID
    """
    params = DeleteNoteInput(note_id=note_id)
    context = resolve_context(ctx)
    return await note_operations.delete_note(context, params.note_id)
