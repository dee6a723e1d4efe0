"""Per-user object key layout."""

from autorag_notes.constants import METADATA_FOLDER


def user_folder(user: str) -> str:
    """Root prefix of ``user``'s namespace."""
    return f"{user}/"


def note_path(user: str, note_id: str) -> str:
    """Key of a note's markdown body."""
    return f"{user}/{note_id}.md"


def metadata_path(user: str, note_id: str) -> str:
    """Key of a note's JSON sidecar."""
    return f"{user}/{METADATA_FOLDER}/{note_id}.json"


def is_sidecar_key(key: str) -> bool:
    """Whether ``key`` points into a sidecar namespace."""
    return f"/{METADATA_FOLDER}/" in f"/{key}"
