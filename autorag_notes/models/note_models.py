"""Pydantic input models for note create/delete operations."""

from __future__ import annotations

import uuid
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

NoteType = Literal["meeting", "idea", "task", "diary", "code", "other"]


class CreateNoteInput(BaseModel):
    """Input model for create_note tool.

    Saves a markdown note in the caller's namespace. A title is generated from
    the first sentence of the text when none is given.

    Examples:
        >>> CreateNoteInput(text="Buy milk", note_type="task")
        >>> CreateNoteInput(text="# Standup\\n\\n- shipped search", title="Standup 10/17", note_type="meeting")
    """

    text: str = Field(
        description="Note body in markdown. #hashtags and http(s) links are indexed."
    )

    title: Optional[str] = Field(
        None,
        description=(
            "Optional title. When omitted, one is derived from the note type and "
            "the first sentence, e.g. 'Task: Buy milk'."
        )
    )

    note_type: NoteType = Field(
        "other",
        description="Note classification: meeting, idea, task, diary, code or other."
    )

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank title as no title."""
        if v is None:
            return None
        return v.strip() or None

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"text": "Buy milk", "note_type": "task"},
                {
                    "text": "Use a sidecar per note for tags and links. #design",
                    "title": "Sidecar layout",
                    "note_type": "idea"
                }
            ]
        }


class DeleteNoteInput(BaseModel):
    """Input model for delete_note tool.

    Permanently removes a note and its metadata. Cannot be undone.

    Examples:
        >>> DeleteNoteInput(note_id="0b3c6f5e-7d1a-4b8e-9a43-2f6d1c9e8a71")
    """

    note_id: str = Field(
        description="The note's UUID, as returned by create_note or a search result."
    )

    @field_validator('note_id')
    @classmethod
    def validate_note_id(cls, v: str) -> str:
        """Require a well-formed UUID and normalize it to canonical form.

        Raises:
            ValueError: If ``v`` is not a UUID
        """
        try:
            return str(uuid.UUID(v.strip()))
        except ValueError:
            raise ValueError(
                f"Invalid note ID '{v}'. Note IDs are UUIDs such as "
                "'0b3c6f5e-7d1a-4b8e-9a43-2f6d1c9e8a71'."
            ) from None

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"note_id": "0b3c6f5e-7d1a-4b8e-9a43-2f6d1c9e8a71"}
            ]
        }
