"""Object store abstraction and the filesystem-backed implementation.

The note store only needs five key/value operations (put, get, head, delete and
prefix-list). :class:`ObjectStore` defines them; :class:`LocalObjectStore` keeps
objects under a directory on disk and is used for local development and tests,
while :class:`~autorag_notes.storage.s3_store.S3ObjectStore` talks to R2.
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from autorag_notes.exceptions import ErrorCode, StorageError

logger = logging.getLogger(__name__)

Body = Union[str, bytes]


@dataclass(frozen=True)
class ObjectInfo:
    """Object attributes returned by ``head`` and ``list``."""

    key: str
    size: int
    content_type: Optional[str] = None
    custom_metadata: dict[str, str] = field(default_factory=dict)
    uploaded: Optional[datetime] = None


@dataclass(frozen=True)
class StoredObject:
    """An object body together with its attributes."""

    info: ObjectInfo
    body: bytes

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid UTF-8 JSON.
        """
        return json.loads(self.text())


def validate_key(key: str) -> str:
    """Reject keys that are empty, absolute or contain ``.``/``..`` segments."""
    if not key or not key.strip():
        raise StorageError("Object key cannot be empty", code=ErrorCode.INVALID_KEY)
    if key.startswith("/"):
        raise StorageError("Object key must be relative", key=key, code=ErrorCode.INVALID_KEY)
    if any(part in {".", ".."} for part in key.split("/")):
        raise StorageError(
            "Object key cannot contain '.' or '..' segments", key=key, code=ErrorCode.INVALID_KEY
        )
    return key


def _to_bytes(body: Body) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


class ObjectStore(abc.ABC):
    """Minimal asynchronous key/value object store."""

    @abc.abstractmethod
    async def put(
        self,
        key: str,
        body: Body,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> ObjectInfo:
        """Create or overwrite ``key``."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[StoredObject]:
        """Return the object at ``key`` or ``None`` when absent."""

    @abc.abstractmethod
    async def head(self, key: str) -> Optional[ObjectInfo]:
        """Return the attributes of ``key`` or ``None`` when absent."""

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""

    @abc.abstractmethod
    async def list(self, prefix: str, limit: int = 1000) -> list[ObjectInfo]:
        """List up to ``limit`` objects whose key starts with ``prefix``, in key order."""


class LocalObjectStore(ObjectStore):
    """Object store kept in a directory tree.

    Bodies live under ``<root>/objects/<key>``; content type, custom metadata and
    upload time live in ``<root>/meta/<key>.json``.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()
        self.objects_root = self.root / "objects"
        self.meta_root = self.root / "meta"

    def _resolve(self, base: Path, key: str, suffix: str = "") -> Path:
        validate_key(key)
        candidate = (base / f"{key}{suffix}").resolve(strict=False)
        if not candidate.is_relative_to(base.resolve(strict=False)):
            raise StorageError("Object key escapes the store root", key=key, code=ErrorCode.INVALID_KEY)
        return candidate

    def _object_path(self, key: str) -> Path:
        return self._resolve(self.objects_root, key)

    def _meta_path(self, key: str) -> Path:
        return self._resolve(self.meta_root, key, ".json")

    def _read_info(self, key: str, object_path: Path) -> ObjectInfo:
        meta_path = self._meta_path(key)
        meta: dict[str, Any] = {}
        if meta_path.is_file():
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable attributes for '%s': %s", key, exc)
        uploaded = meta.get("uploaded")
        return ObjectInfo(
            key=key,
            size=object_path.stat().st_size,
            content_type=meta.get("content_type"),
            custom_metadata=dict(meta.get("custom_metadata") or {}),
            uploaded=datetime.fromisoformat(uploaded) if uploaded else None,
        )

    # -- synchronous implementations, run in a worker thread ------------------

    def _put_sync(
        self,
        key: str,
        body: bytes,
        content_type: Optional[str],
        custom_metadata: dict[str, str],
    ) -> ObjectInfo:
        object_path = self._object_path(key)
        meta_path = self._meta_path(key)
        uploaded = datetime.now(timezone.utc)
        try:
            object_path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            object_path.write_bytes(body)
            meta_path.write_text(
                json.dumps(
                    {
                        "content_type": content_type,
                        "custom_metadata": custom_metadata,
                        "uploaded": uploaded.isoformat(),
                    }
                ),
                encoding="utf-8",
            )
        except OSError as exc:
            raise StorageError(
                f"Failed to write object '{key}'",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=exc,
            ) from exc
        return ObjectInfo(
            key=key,
            size=len(body),
            content_type=content_type,
            custom_metadata=dict(custom_metadata),
            uploaded=uploaded,
        )

    def _get_sync(self, key: str) -> Optional[StoredObject]:
        object_path = self._object_path(key)
        if not object_path.is_file():
            return None
        try:
            body = object_path.read_bytes()
            info = self._read_info(key, object_path)
        except OSError as exc:
            raise StorageError(
                f"Failed to read object '{key}'", key=key, original_error=exc
            ) from exc
        return StoredObject(info=info, body=body)

    def _head_sync(self, key: str) -> Optional[ObjectInfo]:
        object_path = self._object_path(key)
        if not object_path.is_file():
            return None
        try:
            return self._read_info(key, object_path)
        except OSError as exc:
            raise StorageError(
                f"Failed to stat object '{key}'", key=key, original_error=exc
            ) from exc

    def _delete_sync(self, key: str) -> None:
        try:
            self._object_path(key).unlink(missing_ok=True)
            self._meta_path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Failed to delete object '{key}'",
                key=key,
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=exc,
            ) from exc

    def _list_sync(self, prefix: str, limit: int) -> list[ObjectInfo]:
        if not self.objects_root.is_dir():
            return []
        keys = sorted(
            path.relative_to(self.objects_root).as_posix()
            for path in self.objects_root.rglob("*")
            if path.is_file()
        )
        results: list[ObjectInfo] = []
        for key in keys:
            if not key.startswith(prefix):
                continue
            results.append(self._read_info(key, self.objects_root / key))
            if len(results) >= limit:
                break
        return results

    # -- ObjectStore API -------------------------------------------------------

    async def put(
        self,
        key: str,
        body: Body,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> ObjectInfo:
        return await asyncio.to_thread(
            self._put_sync, key, _to_bytes(body), content_type, dict(custom_metadata or {})
        )

    async def get(self, key: str) -> Optional[StoredObject]:
        return await asyncio.to_thread(self._get_sync, key)

    async def head(self, key: str) -> Optional[ObjectInfo]:
        return await asyncio.to_thread(self._head_sync, key)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def list(self, prefix: str, limit: int = 1000) -> list[ObjectInfo]:
        return await asyncio.to_thread(self._list_sync, prefix, limit)
