"""Image generation through Workers AI."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from autorag_notes.clients.cloudflare import CloudflareClient
from autorag_notes.constants import IMAGE_MODEL
from autorag_notes.exceptions import ConfigurationError, ErrorCode, UpstreamServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    prompt: str
    steps: int
    mime_type: str = "image/jpeg"

    @property
    def caption(self) -> str:
        return f'Generated image with prompt: "{self.prompt}" using {self.steps} steps'


async def generate_image(
    client: Optional[CloudflareClient],
    prompt: str,
    steps: int = 8,
) -> Union[GeneratedImage, dict[str, Any]]:
    """Generate a JPEG with ``flux-1-schnell``.

    Returns:
        A :class:`GeneratedImage`, or a ``{"success": false, ...}`` payload when
        Workers AI is not configured or the call fails.
    """
    try:
        if client is None:
            raise ConfigurationError(
                "Image generation requires CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN",
                missing=["CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN"],
            )
        result = await client.run_model(IMAGE_MODEL, {"prompt": prompt, "steps": steps})
        encoded = result.get("image")
        if not isinstance(encoded, str) or not encoded:
            raise UpstreamServiceError(
                "Workers AI", "Response did not contain an image", code=ErrorCode.UPSTREAM_INVALID_RESPONSE
            )
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise UpstreamServiceError(
                "Workers AI", "Image payload is not valid base64", code=ErrorCode.UPSTREAM_INVALID_RESPONSE
            ) from exc
    except (ConfigurationError, UpstreamServiceError) as exc:
        logger.error("Image generation failed: %s", exc)
        return {
            "success": False,
            "error": "Image generation failed",
            "message": exc.message,
            "details": exc.details,
        }

    logger.info("Generated %d byte image in %d steps", len(data), steps)
    return GeneratedImage(data=data, prompt=prompt, steps=steps)
