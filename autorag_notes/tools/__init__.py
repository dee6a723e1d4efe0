"""MCP tool definitions for the AutoRAG Notes server.

This module imports all tool submodules to register them with the MCP server.
Each tool module uses the @mcp.tool() decorator to auto-register its tools.
"""

# Import all tool modules to register their @mcp.tool() decorated functions
from autorag_notes.tools import note_tools
from autorag_notes.tools import search_tools
from autorag_notes.tools import image_tools
from autorag_notes.tools import sync_tools

__all__ = [
    "note_tools",
    "search_tools",
    "image_tools",
    "sync_tools",
]
