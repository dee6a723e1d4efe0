"""Note metadata and sidecar assembly."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from autorag_notes.constants import (
    CONTENT_PREVIEW_CHARS,
    NOTE_TYPE_PREFIXES,
    TITLE_MAX_CHARS,
)
from autorag_notes.data_models import NoteMetadata, NoteSidecar

_TAG_PATTERN = re.compile(r"#(\w+)")
_URL_PATTERN = re.compile(r"https?://\S+")
_FIRST_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]?")


def extract_tags(text: str) -> list[str]:
    """Unique lower-cased hashtags, in order of first appearance."""
    return list(dict.fromkeys(match.lower() for match in _TAG_PATTERN.findall(text)))


def extract_links(text: str) -> list[str]:
    """Unique http(s) URLs, in order of first appearance."""
    return list(dict.fromkeys(_URL_PATTERN.findall(text)))


def generate_title(text: str, note_type: Optional[str] = None) -> str:
    """Build a ``"<Type>: <first sentence>"`` title for notes created without one.

    The first sentence is cut to 50 characters; an ellipsis marks the cut.
    """
    first_line = text.split("\n")[0].strip()
    match = _FIRST_SENTENCE_PATTERN.match(text)
    base = (match.group(0) if match else first_line)[:TITLE_MAX_CHARS]
    prefix = NOTE_TYPE_PREFIXES.get(note_type or "other", NOTE_TYPE_PREFIXES["other"])
    ellipsis = "..." if len(base) >= TITLE_MAX_CHARS else ""
    return f"{prefix}: {base}{ellipsis}"


def count_words(text: str) -> int:
    return len(text.split())


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def build_note_metadata(
    note_id: str,
    author: str,
    text: str,
    note_type: str,
    created: datetime,
    title: Optional[str] = None,
) -> NoteMetadata:
    return NoteMetadata(
        id=note_id,
        created_at=format_timestamp(created),
        created_timestamp=to_epoch_ms(created),
        title=title or generate_title(text, note_type),
        note_type=note_type or "other",
        author=author,
        char_count=len(text),
        word_count=count_words(text),
        version=1,
    )


def build_sidecar(metadata: NoteMetadata, text: str) -> NoteSidecar:
    return NoteSidecar(
        metadata=metadata,
        content_preview=text[:CONTENT_PREVIEW_CHARS],
        tags=extract_tags(text),
        links=extract_links(text),
    )


def build_context(metadata: NoteMetadata) -> str:
    """Plain-text summary AutoRAG uses as indexing guidance."""
    return (
        f"{metadata.note_type} note by {metadata.author}: {metadata.title}. "
        f"Created: {metadata.created_at}."
    )


def create_custom_metadata(values: Mapping[str, Any]) -> dict[str, str]:
    """Stringify a mapping for object-store custom metadata, dropping ``None`` values."""
    custom: dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            continue
        custom[key] = value if isinstance(value, str) else str(value)
    return custom
