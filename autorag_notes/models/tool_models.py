"""Pydantic input models for image generation and index sync."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator

ImageSteps = Annotated[int, Field(ge=4, le=8)]


class GenerateImageInput(BaseModel):
    """Input model for generateImage tool.

    Examples:
        >>> GenerateImageInput(prompt="a lighthouse at dusk, watercolor")
        >>> GenerateImageInput(prompt="isometric city", steps=4)
    """

    prompt: str = Field(
        min_length=1,
        description="Text description of the image to generate."
    )

    steps: int = Field(
        8,
        ge=4,
        le=8,
        description="Diffusion steps (4-8). More steps give more detail but take longer."
    )

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Validate prompt is not blank."""
        if not v.strip():
            raise ValueError("Prompt cannot be empty. Describe the image to generate.")
        return v

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"prompt": "a lighthouse at dusk, watercolor", "steps": 8}
            ]
        }


class SyncInput(BaseModel):
    """Input model for sync_autorag tool."""

    force: bool = Field(
        False,
        description="Request a full resync instead of an incremental scan."
    )
