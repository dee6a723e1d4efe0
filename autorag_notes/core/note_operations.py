"""Core business logic for note create/delete operations.

A note is two objects: the markdown body and a JSON sidecar. They are written
and deleted with concurrent, independent calls. The pair is kept consistent as
far as the object store allows:

* a create whose second write fails deletes the object that did get written
  and raises :class:`PartialWriteError`;
* a delete reports the outcome of each object separately, so a half-deleted
  note is visible to the caller instead of passing as success.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from autorag_notes.core.metadata import (
    build_context,
    build_note_metadata,
    build_sidecar,
    create_custom_metadata,
)
from autorag_notes.data_models import NotesContext
from autorag_notes.exceptions import PartialWriteError, StorageError
from autorag_notes.storage.paths import metadata_path, note_path, user_folder

logger = logging.getLogger(__name__)


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


async def _rollback(context: NotesContext, keys: list[str]) -> list[str]:
    """Best-effort removal of objects left behind by a failed create."""
    rolled_back: list[str] = []
    for key in keys:
        try:
            await context.store.delete(key)
            rolled_back.append(key)
        except StorageError as exc:
            logger.error("Could not roll back '%s' after a failed create: %s", key, exc)
    return rolled_back


async def _read_title(context: NotesContext, sidecar_key: str, note_id: str) -> str:
    """Title recorded in the sidecar, or ``"Unknown"`` when it cannot be read."""
    try:
        sidecar = await context.store.get(sidecar_key)
        if sidecar is not None:
            data = sidecar.json()
            if isinstance(data, dict) and data.get("title"):
                return str(data["title"])
    except (StorageError, ValueError) as exc:
        logger.warning("Could not retrieve metadata for note %s: %s", note_id, exc)
    return "Unknown"


# ==============================================================================
# NOTE OPERATIONS
# ==============================================================================


async def create_note(
    context: NotesContext,
    text: str,
    title: Optional[str] = None,
    note_type: str = "other",
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Save a note and its metadata sidecar in the caller's namespace.

    Args:
        context: Request context carrying the verified user and object store.
        text: Note body (markdown).
        title: Optional title; derived from ``text`` and ``note_type`` if omitted.
        note_type: One of the fixed note classifications.
        now: Creation time; defaults to the current UTC time.

    Returns:
        ``{"id", "title", "metadata", "storage": {"note", "sidecar"}}``.

    Raises:
        PartialWriteError: If either object failed to write. Whatever was
            written is deleted again before raising.
    """
    user = context.user.email
    note_id = str(uuid.uuid4())
    created = now or datetime.now(timezone.utc)

    metadata = build_note_metadata(note_id, user, text, note_type, created, title=title)
    custom_metadata = create_custom_metadata(
        {**metadata.as_payload(), "context": build_context(metadata)}
    )
    sidecar = build_sidecar(metadata, text)

    note_key = note_path(user, note_id)
    sidecar_key = metadata_path(user, note_id)

    outcomes = await asyncio.gather(
        context.store.put(note_key, text, content_type="text/markdown", custom_metadata=custom_metadata),
        context.store.put(
            sidecar_key,
            json.dumps(sidecar.as_payload(), indent=2),
            content_type="application/json",
        ),
        return_exceptions=True,
    )

    failed: list[str] = []
    written: list[str] = []
    for key, outcome in zip((note_key, sidecar_key), outcomes):
        if isinstance(outcome, StorageError):
            logger.error("Failed to write '%s': %s", key, outcome)
            failed.append(key)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            written.append(key)

    if failed:
        rolled_back = await _rollback(context, written)
        raise PartialWriteError(note_id, failed_keys=failed, rolled_back=rolled_back)

    logger.info("Created %s note '%s' (%s) for %s", metadata.note_type, metadata.title, note_id, user)
    return {
        "id": note_id,
        "title": metadata.title,
        "metadata": metadata.as_payload(),
        "storage": {
            "note": note_key,
            "sidecar": sidecar_key,
        },
    }


async def delete_note(context: NotesContext, note_id: str) -> dict[str, Any]:
    """Delete a note and its sidecar from the caller's namespace.

    Args:
        context: Request context carrying the verified user and object store.
        note_id: Validated note UUID.

    Returns:
        A payload with ``success`` true when both objects were deleted. A note
        that does not exist yields ``success: false`` with ``error: "Note not
        found"``; this is a normal result, not a fault.
    """
    user = context.user.email
    note_key = note_path(user, note_id)
    sidecar_key = metadata_path(user, note_id)

    try:
        existing = await context.store.head(note_key)
    except StorageError as exc:
        logger.error("Error deleting note %s: %s", note_id, exc)
        return {
            "success": False,
            "error": "Deletion failed",
            "note_id": note_id,
            "error_details": exc.message,
            "message": f"Failed to delete note {note_id}: {exc.message}",
        }

    if existing is None:
        return {
            "success": False,
            "error": "Note not found",
            "note_id": note_id,
            "user_folder": user_folder(user),
            "message": f"No note found with ID: {note_id}",
        }

    title = await _read_title(context, sidecar_key, note_id)

    keys = (note_key, sidecar_key)
    outcomes = await asyncio.gather(
        *(context.store.delete(key) for key in keys), return_exceptions=True
    )

    deleted: list[str] = []
    failed: list[dict[str, str]] = []
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, StorageError):
            logger.error("Failed to delete '%s': %s", key, outcome)
            failed.append({"path": key, "error": outcome.message})
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            deleted.append(key)

    if failed:
        return {
            "success": False,
            "error": "Partial deletion",
            "note_id": note_id,
            "title": title,
            "files_deleted": deleted,
            "files_failed": failed,
            "message": f"Note {note_id} was only partially deleted; retry to remove the remaining files",
        }

    logger.info("Deleted note '%s' (%s) for %s", title, note_id, user)
    return {
        "success": True,
        "deleted_note": {
            "id": note_id,
            "title": title,
            "user": user,
        },
        "files_deleted": deleted,
        "message": f'Successfully deleted note: "{title}" ({note_id})',
    }
