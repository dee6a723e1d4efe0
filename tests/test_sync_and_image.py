"""Tests for the AutoRAG sync trigger and Workers AI image generation."""

import base64

import pytest

from autorag_notes.config import Settings
from autorag_notes.core.image_operations import GeneratedImage, generate_image
from autorag_notes.core.sync_operations import trigger_sync


@pytest.fixture
def settings():
    return Settings(cloudflare_account_id="acct-1", cloudflare_api_token="cf-token", autorag_id="notes")


class TestSync:
    @pytest.mark.asyncio
    async def test_success(self, settings, cloudflare, fake_cloudflare):
        result = await trigger_sync(settings, cloudflare)

        assert result["success"] is True
        assert result["details"]["forced"] is False
        assert result["details"]["result"] == {"job_id": "job-1"}
        request = fake_cloudflare.requests[-1]
        assert request.method == "PATCH"
        assert request.url.path == "/client/v4/accounts/acct-1/autorag/rags/notes/sync"
        assert request.content == b""

    @pytest.mark.asyncio
    async def test_force_sends_body(self, settings, cloudflare, fake_cloudflare):
        await trigger_sync(settings, cloudflare, force=True)
        assert fake_cloudflare.last_body() == {"force": True}

    @pytest.mark.asyncio
    async def test_missing_configuration(self):
        settings = Settings(cloudflare_account_id=None, cloudflare_api_token=None)
        result = await trigger_sync(settings, None)
        assert result["success"] is False
        assert result["missing"] == ["CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN"]

    @pytest.mark.asyncio
    async def test_request_failure(self, settings, cloudflare, fake_cloudflare):
        fake_cloudflare.fail_with = 403
        result = await trigger_sync(settings, cloudflare)
        assert result["error"] == "AutoRAG sync request failed"
        assert result["details"]["status"] == 403
        assert result["details"]["url"].endswith("/autorag/rags/notes/sync")
        assert result["troubleshooting"]["common_issues"]

    @pytest.mark.asyncio
    async def test_envelope_failure(self, settings, cloudflare, fake_cloudflare):
        fake_cloudflare.sync_envelope = {"success": False, "errors": [{"message": "busy"}]}
        result = await trigger_sync(settings, cloudflare)
        assert result["error"] == "AutoRAG sync failed"
        assert result["details"]["errors"] == [{"message": "busy"}]


class TestImage:
    @pytest.mark.asyncio
    async def test_success(self, cloudflare, fake_cloudflare):
        result = await generate_image(cloudflare, "a lighthouse", steps=4)

        assert isinstance(result, GeneratedImage)
        assert result.data == base64.b64decode(fake_cloudflare.image)
        assert result.caption == 'Generated image with prompt: "a lighthouse" using 4 steps'
        assert fake_cloudflare.requests[-1].url.path.endswith("/ai/run/@cf/black-forest-labs/flux-1-schnell")
        assert fake_cloudflare.last_body() == {"prompt": "a lighthouse", "steps": 4}

    @pytest.mark.asyncio
    async def test_not_configured(self):
        result = await generate_image(None, "a lighthouse")
        assert result["success"] is False
        assert result["error"] == "Image generation failed"

    @pytest.mark.asyncio
    async def test_upstream_failure(self, cloudflare, fake_cloudflare):
        fake_cloudflare.fail_with = 500
        result = await generate_image(cloudflare, "a lighthouse")
        assert result["error"] == "Image generation failed"
        assert result["details"]["status"] == 500

    @pytest.mark.asyncio
    async def test_invalid_image_payload(self, cloudflare, fake_cloudflare):
        fake_cloudflare.image = "not base64!"
        result = await generate_image(cloudflare, "a lighthouse")
        assert result["success"] is False
