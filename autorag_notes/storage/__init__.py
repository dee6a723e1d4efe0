"""Object storage backends and per-user key layout."""

from autorag_notes.storage.object_store import (
    LocalObjectStore,
    ObjectInfo,
    ObjectStore,
    StoredObject,
)
from autorag_notes.storage.paths import (
    is_sidecar_key,
    metadata_path,
    note_path,
    user_folder,
)

__all__ = [
    "LocalObjectStore",
    "ObjectInfo",
    "ObjectStore",
    "StoredObject",
    "is_sidecar_key",
    "metadata_path",
    "note_path",
    "user_folder",
]
