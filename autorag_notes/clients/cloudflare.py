"""Cloudflare REST client for AutoRAG search, AutoRAG sync and Workers AI."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from autorag_notes.constants import CLOUDFLARE_API_BASE
from autorag_notes.exceptions import ErrorCode, UpstreamServiceError

logger = logging.getLogger(__name__)


class CloudflareClient:
    """Thin wrapper over the Cloudflare v4 API.

    Every method performs exactly one HTTP call and raises
    :class:`UpstreamServiceError` on transport failures, non-2xx statuses and
    envelopes reporting ``success: false``. There are no retries.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        autorag_id: str,
        http: Optional[httpx.AsyncClient] = None,
        base_url: str = CLOUDFLARE_API_BASE,
        timeout: float = 60.0,
    ) -> None:
        self.account_id = account_id
        self.autorag_id = autorag_id
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"}
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @property
    def autorag_url(self) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/autorag/rags/{self.autorag_id}"

    async def _request(
        self,
        service: str,
        method: str,
        url: str,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._http.request(method, url, headers=self._headers, json=json_body)
        except httpx.HTTPError as exc:
            logger.error("%s request to %s failed: %s", service, url, exc)
            raise UpstreamServiceError(service, f"{service} request failed: {exc}") from exc

        if response.is_error:
            logger.error("%s returned HTTP %d: %s", service, response.status_code, response.text[:200])
            raise UpstreamServiceError(
                service,
                f"{service} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(
                service,
                f"{service} returned a non-JSON response",
                status_code=response.status_code,
                body=response.text,
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
            ) from exc

        if not isinstance(payload, dict):
            raise UpstreamServiceError(
                service,
                f"Invalid {service} response format",
                status_code=response.status_code,
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
            )
        return payload

    def _unwrap(self, service: str, payload: dict[str, Any]) -> Any:
        if payload.get("success") is False:
            errors = payload.get("errors") or []
            message = "; ".join(str(e.get("message", e)) for e in errors if e) or "unknown error"
            raise UpstreamServiceError(service, f"{service} reported errors: {message}")
        return payload.get("result")

    async def search(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run an AutoRAG raw-results search and normalize the response shape."""
        payload = await self._request("AutoRAG", "POST", f"{self.autorag_url}/search", params)
        result = self._unwrap("AutoRAG", payload)
        if not isinstance(result, dict):
            raise UpstreamServiceError(
                "AutoRAG", "Invalid AutoRAG response format", code=ErrorCode.UPSTREAM_INVALID_RESPONSE
            )
        return {
            "object": result.get("object") or "vector_store.search_results.page",
            "search_query": result.get("search_query") or params.get("query"),
            "data": result.get("data") or [],
        }

    async def ai_search(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run an AutoRAG natural-language-answer search and normalize the response shape."""
        payload = await self._request("AutoRAG", "POST", f"{self.autorag_url}/ai-search", params)
        result = self._unwrap("AutoRAG", payload)
        if not isinstance(result, dict):
            raise UpstreamServiceError(
                "AutoRAG", "Invalid AutoRAG AI response format", code=ErrorCode.UPSTREAM_INVALID_RESPONSE
            )
        return {
            "object": result.get("object") or "vector_store.search_results.page",
            "search_query": result.get("search_query") or params.get("query"),
            "response": result.get("response"),
            "data": result.get("data") or [],
        }

    async def sync(self, force: bool = False) -> dict[str, Any]:
        """Ask AutoRAG to rescan its data source. Returns the raw envelope."""
        return await self._request(
            "AutoRAG sync",
            "PATCH",
            f"{self.autorag_url}/sync",
            {"force": True} if force else None,
        )

    async def run_model(self, model: str, inputs: dict[str, Any]) -> dict[str, Any]:
        """Run a Workers AI model and return its ``result`` object."""
        url = f"{self.base_url}/accounts/{self.account_id}/ai/run/{model}"
        payload = await self._request("Workers AI", "POST", url, inputs)
        result = self._unwrap("Workers AI", payload)
        if not isinstance(result, dict):
            raise UpstreamServiceError(
                "Workers AI", "Invalid Workers AI response format", code=ErrorCode.UPSTREAM_INVALID_RESPONSE
            )
        return result
