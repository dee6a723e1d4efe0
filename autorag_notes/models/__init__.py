"""Pydantic input models for MCP tool validation.

Every tool builds its input model from the raw arguments before touching
storage or the network, so malformed input (a bad UUID, an out-of-range limit)
is rejected with a descriptive ValidationError.

Architecture:
- base: Shared search fields (query, limit) and the relative time window
- note_models: Input models for note create/delete
- search_models: Input models for the three search tools
- tool_models: Input models for image generation and index sync

Usage:
    from autorag_notes.models import CreateNoteInput, DeleteNoteInput
    from autorag_notes.models import AdvancedSearchInput, GenerateImageInput
"""

from .base import BaseSearchInput, DayCount, SearchLimit, TimeWindowInput
from .note_models import CreateNoteInput, DeleteNoteInput, NoteType
from .search_models import AdvancedSearchInput, AISearchInput, SimpleSearchInput
from .tool_models import GenerateImageInput, ImageSteps, SyncInput

__all__ = [
    # Base models
    "BaseSearchInput",
    "TimeWindowInput",
    "SearchLimit",
    "DayCount",
    # Note models
    "CreateNoteInput",
    "DeleteNoteInput",
    "NoteType",
    # Search models
    "SimpleSearchInput",
    "AdvancedSearchInput",
    "AISearchInput",
    # Other tools
    "GenerateImageInput",
    "ImageSteps",
    "SyncInput",
]
