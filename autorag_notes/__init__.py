"""AutoRAG Notes MCP Server

Private per-user notes with semantic search, behind Google sign-in, via
Model Context Protocol.
"""

from autorag_notes.config import SETTINGS, Settings
from autorag_notes.data_models import NoteMetadata, NotesContext, UserIdentity
from autorag_notes.session import resolve_context
from autorag_notes.server import mcp, run_server

# Import tools to register them with the MCP server
from autorag_notes import tools  # noqa: F401

__version__ = "0.1.0"
__all__ = [
    "SETTINGS",
    "Settings",
    "NoteMetadata",
    "NotesContext",
    "UserIdentity",
    "resolve_context",
    "mcp",
    "run_server",
]
