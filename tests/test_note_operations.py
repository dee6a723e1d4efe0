"""Tests for note create/delete against the filesystem object store."""

import json
import uuid
from datetime import datetime, timezone

import pytest

from autorag_notes.core.note_operations import create_note, delete_note
from autorag_notes.data_models import NotesContext
from autorag_notes.exceptions import ErrorCode, PartialWriteError, StorageError
from autorag_notes.storage.object_store import LocalObjectStore
from autorag_notes.storage.paths import metadata_path, note_path, user_folder


class FlakyStore(LocalObjectStore):
    """Local store that fails writes or deletes for keys containing a marker."""

    def __init__(self, root, fail_put=None, fail_delete=None):
        super().__init__(root)
        self.fail_put = fail_put
        self.fail_delete = fail_delete

    async def put(self, key, body, content_type=None, custom_metadata=None):
        if self.fail_put and self.fail_put in key:
            raise StorageError("disk full", key=key, code=ErrorCode.STORAGE_WRITE_FAILED)
        return await super().put(key, body, content_type=content_type, custom_metadata=custom_metadata)

    async def delete(self, key):
        if self.fail_delete and self.fail_delete in key:
            raise StorageError("permission denied", key=key, code=ErrorCode.STORAGE_DELETE_FAILED)
        await super().delete(key)


class TestCreateNote:
    @pytest.mark.asyncio
    async def test_buy_milk(self, context, store):
        result = await create_note(context, "Buy milk", note_type="task")

        assert uuid.UUID(result["id"])
        assert result["title"] == "Task: Buy milk"
        assert result["metadata"]["word_count"] == 2
        assert result["metadata"]["author"] == "alice@example.com"
        assert result["storage"]["note"] == f"alice@example.com/{result['id']}.md"
        assert result["storage"]["sidecar"] == f"alice@example.com/.metadata/{result['id']}.json"

        note = await store.get(result["storage"]["note"])
        assert note.text() == "Buy milk"
        assert note.info.content_type == "text/markdown"
        assert note.info.custom_metadata["title"] == "Task: Buy milk"
        assert note.info.custom_metadata["created_timestamp"] == str(result["metadata"]["created_timestamp"])
        assert "context" in note.info.custom_metadata

        sidecar = (await store.get(result["storage"]["sidecar"])).json()
        assert sidecar["id"] == result["id"]
        assert sidecar["content_preview"] == "Buy milk"
        assert sidecar["tags"] == []

    @pytest.mark.asyncio
    async def test_explicit_title_and_time(self, context):
        created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        result = await create_note(context, "Agenda #q1", title="Planning", note_type="meeting", now=created)
        assert result["title"] == "Planning"
        assert result["metadata"]["created_at"] == "2025-03-01T12:00:00.000Z"
        assert result["metadata"]["note_type"] == "meeting"

    @pytest.mark.asyncio
    async def test_failed_sidecar_write_rolls_back_note(self, user, tmp_path):
        store = FlakyStore(tmp_path / "bucket", fail_put=".metadata")
        context = NotesContext(user=user, store=store)

        with pytest.raises(PartialWriteError) as excinfo:
            await create_note(context, "Buy milk", note_type="task")

        error = excinfo.value
        assert error.failed_keys == [metadata_path(user.email, error.note_id)]
        assert error.rolled_back == [note_path(user.email, error.note_id)]
        assert await store.head(note_path(user.email, error.note_id)) is None
        assert await store.list(user_folder(user.email)) == []


class TestDeleteNote:
    @pytest.mark.asyncio
    async def test_not_found(self, context):
        note_id = str(uuid.uuid4())
        result = await delete_note(context, note_id)
        assert result["success"] is False
        assert result["error"] == "Note not found"
        assert result["user_folder"] == "alice@example.com/"
        assert note_id in result["message"]

    @pytest.mark.asyncio
    async def test_create_then_delete(self, context, store):
        created = await create_note(context, "Buy milk", note_type="task")
        result = await delete_note(context, created["id"])

        assert result["success"] is True
        assert result["deleted_note"] == {
            "id": created["id"],
            "title": "Task: Buy milk",
            "user": "alice@example.com",
        }
        assert result["files_deleted"] == [created["storage"]["note"], created["storage"]["sidecar"]]
        assert await store.head(created["storage"]["note"]) is None
        assert await store.head(created["storage"]["sidecar"]) is None

    @pytest.mark.asyncio
    async def test_unreadable_sidecar_gives_unknown_title(self, context, store):
        created = await create_note(context, "Buy milk", note_type="task")
        await store.put(created["storage"]["sidecar"], "{not json")

        result = await delete_note(context, created["id"])
        assert result["success"] is True
        assert result["deleted_note"]["title"] == "Unknown"

    @pytest.mark.asyncio
    async def test_missing_sidecar_still_deletes(self, context, store):
        created = await create_note(context, "Buy milk", note_type="task")
        await store.delete(created["storage"]["sidecar"])

        result = await delete_note(context, created["id"])
        assert result["success"] is True
        assert result["deleted_note"]["title"] == "Unknown"

    @pytest.mark.asyncio
    async def test_partial_deletion_is_reported(self, user, tmp_path):
        store = FlakyStore(tmp_path / "bucket", fail_delete=".metadata")
        context = NotesContext(user=user, store=store)
        created = await create_note(context, "Buy milk", note_type="task")

        result = await delete_note(context, created["id"])

        assert result["success"] is False
        assert result["error"] == "Partial deletion"
        assert result["files_deleted"] == [created["storage"]["note"]]
        assert result["files_failed"][0]["path"] == created["storage"]["sidecar"]
        assert await store.head(created["storage"]["sidecar"]) is not None

    @pytest.mark.asyncio
    async def test_other_users_note_is_invisible(self, context, other_context, store):
        created = await create_note(context, "Buy milk", note_type="task")

        result = await delete_note(other_context, created["id"])

        assert result["error"] == "Note not found"
        assert await store.head(created["storage"]["note"]) is not None


@pytest.mark.asyncio
async def test_sidecar_is_indented_json(context, store):
    created = await create_note(context, "hello")
    raw = (await store.get(created["storage"]["sidecar"])).text()
    assert raw.startswith("{\n  ")
    assert json.loads(raw)["title"] == "Note: hello"
