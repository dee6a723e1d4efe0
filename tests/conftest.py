"""Shared fixtures: a temporary object store and a fake Cloudflare API."""

import base64
import json
from typing import Any, Optional

import httpx
import pytest

from autorag_notes.clients.cloudflare import CloudflareClient
from autorag_notes.core.filters import folder_of, matches_filter
from autorag_notes.data_models import NotesContext, UserIdentity
from autorag_notes.storage.object_store import LocalObjectStore, ObjectStore

FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


class FakeCloudflare:
    """In-memory stand-in for the AutoRAG and Workers AI endpoints.

    Search requests are answered by evaluating the request's filter tree
    against each indexed document's attributes, like AutoRAG does.
    """

    def __init__(self) -> None:
        self.documents: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self.answer = "You wanted to buy milk."
        self.image = base64.b64encode(FAKE_JPEG).decode("ascii")
        self.sync_envelope: dict[str, Any] = {"success": True, "result": {"job_id": "job-1"}}

    def add(self, filename: str, text: str, timestamp: Optional[int] = None, score: float = 0.9) -> None:
        self.documents.append(
            {
                "file_id": f"file-{len(self.documents)}",
                "filename": filename,
                "score": score,
                "attributes": {"folder": folder_of(filename), "timestamp": timestamp},
                "content": [{"id": "chunk-0", "type": "text", "text": text}],
            }
        )

    async def index(self, store: ObjectStore) -> None:
        """Index every object in ``store``, sidecars included."""
        for info in await store.list(""):
            stored = await store.get(info.key)
            timestamp = info.custom_metadata.get("created_timestamp")
            self.add(info.key, stored.text(), int(timestamp) if timestamp else None)

    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="upstream unavailable")

        path = request.url.path
        if path.endswith("/sync"):
            return httpx.Response(200, json=self.sync_envelope)
        if "/ai/run/" in path:
            return httpx.Response(200, json={"success": True, "result": {"image": self.image}})

        body = json.loads(request.content)
        matches = [d for d in self.documents if matches_filter(body["filters"], d["attributes"])]
        result: dict[str, Any] = {
            "object": "vector_store.search_results.page",
            "search_query": body["query"],
            "data": matches[: body["max_num_results"]],
        }
        if path.endswith("/ai-search"):
            result["response"] = self.answer
        return httpx.Response(200, json={"success": True, "result": result})


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "bucket")


@pytest.fixture
def user():
    return UserIdentity(subject="108", email="alice@example.com", name="Alice", access_token="g-token")


@pytest.fixture
def other_user():
    return UserIdentity(subject="109", email="bob@example.com", name="Bob")


@pytest.fixture
def fake_cloudflare():
    return FakeCloudflare()


@pytest.fixture
def cloudflare(fake_cloudflare):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_cloudflare.handler))
    return CloudflareClient(account_id="acct-1", api_token="cf-token", autorag_id="notes", http=http)


@pytest.fixture
def context(user, store, cloudflare):
    return NotesContext(user=user, store=store, search=cloudflare)


@pytest.fixture
def other_context(other_user, store, cloudflare):
    return NotesContext(user=other_user, store=store, search=cloudflare)
