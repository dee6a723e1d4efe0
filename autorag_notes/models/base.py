"""Base Pydantic models for MCP tool input validation.

Base Models:
- BaseSearchInput: Query text and result limit shared by every search tool
- TimeWindowInput: Adds the optional "last N days" / "older than N days" window
- SearchLimit, DayCount: Bounded ints for tool signatures, so the bounds show
  up in the published tool schema
"""

from __future__ import annotations

from typing import Annotated, Optional
from pydantic import BaseModel, Field, field_validator

from autorag_notes.constants import MAX_SEARCH_RESULTS

SearchLimit = Annotated[int, Field(ge=1, le=MAX_SEARCH_RESULTS)]
DayCount = Annotated[int, Field(ge=1)]


class BaseSearchInput(BaseModel):
    """Base model for search operations with common validation.

    All search input models inherit from this class.
    """

    query: str = Field(
        min_length=1,
        description=(
            "What to look for, in natural language. "
            "Examples: 'milk', 'notes about the Q3 roadmap'."
        ),
        examples=["milk", "meeting with design team", "ideas for the offsite"]
    )

    limit: int = Field(
        10,
        ge=1,
        le=MAX_SEARCH_RESULTS,
        description=f"Maximum number of results to return (1-{MAX_SEARCH_RESULTS})."
    )

    @field_validator('query')
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Validate search query is not blank.

        Args:
            v: The query to validate

        Returns:
            The stripped query

        Raises:
            ValueError: If the query is only whitespace
        """
        cleaned = v.strip()
        if not cleaned:
            raise ValueError(
                "Search query cannot be empty. "
                "Provide a search term to find notes."
            )
        return cleaned


class TimeWindowInput(BaseSearchInput):
    """Base model for searches that accept a relative time window.

    ``since_days`` keeps notes created within the last N days; ``until_days``
    keeps notes created more than N days ago. Both may be combined.
    """

    since_days: Optional[int] = Field(
        None,
        ge=1,
        description="Only include notes from the last N days (omit for all time)."
    )

    until_days: Optional[int] = Field(
        None,
        ge=1,
        description="Only include notes older than N days (omit for no upper bound)."
    )
