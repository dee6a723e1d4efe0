"""Image generation MCP tool."""
from __future__ import annotations

from typing import Any, Union

from mcp.server.fastmcp import Context, Image

from autorag_notes.core.image_operations import GeneratedImage, generate_image
from autorag_notes.models import GenerateImageInput, ImageSteps
from autorag_notes.server import mcp
from autorag_notes.session import get_cloudflare_client, get_user_identity


# Mixed image + text content cannot be described by an output schema.
@mcp.tool(name="generateImage", structured_output=False)
async def generate_image_tool(
    prompt: str,
    steps: ImageSteps = 8,
    ctx: Context | None = None,
) -> Union[list[Any], dict[str, Any]]:
    """Generate an image from a text prompt.

    Args:
        prompt (str): Description of the image.
        steps (int): Diffusion steps, 4-8. Default: 8.

    Returns:
        The JPEG image followed by a caption naming the prompt and steps,
        or {"success": false, "error": "Image generation failed", ...}.
    """
    params = GenerateImageInput(prompt=prompt, steps=steps)
    get_user_identity()  # signed-in users only
    result = await generate_image(get_cloudflare_client(), params.prompt, steps=params.steps)
    if not isinstance(result, GeneratedImage):
        return result
    return [Image(data=result.data, format="jpeg"), result.caption]
