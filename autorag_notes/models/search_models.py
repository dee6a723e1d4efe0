"""Pydantic input models for search operations."""

from __future__ import annotations

from pydantic import Field

from autorag_notes.constants import MAX_SEARCH_RESULTS

from .base import BaseSearchInput, TimeWindowInput


class SimpleSearchInput(BaseSearchInput):
    """Input model for search_notes_simple tool.

    Examples:
        >>> SimpleSearchInput(query="milk")
        >>> SimpleSearchInput(query="roadmap", limit=25)
    """

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"query": "milk", "limit": 10},
            ]
        }


class AdvancedSearchInput(TimeWindowInput):
    """Input model for search_notes_advanced tool.

    Examples:
        >>> AdvancedSearchInput(query="standup", since_days=7)
        >>> AdvancedSearchInput(query="ideas", until_days=30, limit=5)
    """

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"query": "standup", "since_days": 7},
                {"query": "ideas", "until_days": 30, "limit": 5},
            ]
        }


class AISearchInput(TimeWindowInput):
    """Input model for ai_search_notes tool.

    Fewer sources are retrieved by default since they feed a generated answer.
    """

    limit: int = Field(
        5,
        ge=1,
        le=MAX_SEARCH_RESULTS,
        description=f"Maximum number of notes to draw the answer from (1-{MAX_SEARCH_RESULTS})."
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"query": "What did we decide about pricing?", "since_days": 14},
            ]
        }
