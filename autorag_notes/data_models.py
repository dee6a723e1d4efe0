"""Data models for user identity, request context and note metadata."""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from autorag_notes.clients.cloudflare import CloudflareClient
    from autorag_notes.storage.object_store import ObjectStore


@dataclass(frozen=True)
class UserIdentity:
    """A user verified by the identity provider.

    Held only inside the in-memory grant table; never written to storage.
    """

    subject: str
    email: str
    name: str
    access_token: str = field(default="", repr=False)


@dataclass(frozen=True)
class NotesContext:
    """Everything a single tool invocation needs, passed explicitly."""

    user: UserIdentity
    store: ObjectStore
    search: Optional[CloudflareClient] = None


@dataclass(frozen=True)
class NoteMetadata:
    """Metadata stored with a note and copied into its sidecar."""

    id: str
    created_at: str
    created_timestamp: int
    title: str
    note_type: str
    author: str
    char_count: int
    word_count: int
    version: int = 1

    def as_payload(self) -> dict[str, Any]:
        """Return a serializable payload representation."""
        return asdict(self)


@dataclass(frozen=True)
class NoteSidecar:
    """Companion record written next to each note under ``.metadata/``."""

    metadata: NoteMetadata
    content_preview: str
    tags: list[str]
    links: list[str]

    def as_payload(self) -> dict[str, Any]:
        """Flatten metadata and sidecar-only fields into one mapping."""
        payload = self.metadata.as_payload()
        payload.update(
            {
                "content_preview": self.content_preview,
                "tags": list(self.tags),
                "links": list(self.links),
            }
        )
        return payload
