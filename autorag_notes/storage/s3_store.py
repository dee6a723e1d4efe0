"""S3-compatible object store (Cloudflare R2) built on boto3."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from autorag_notes.exceptions import ErrorCode, StorageError
from autorag_notes.storage.object_store import (
    Body,
    ObjectInfo,
    ObjectStore,
    StoredObject,
    _to_bytes,
    validate_key,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# RFC 2047 encoded-word, the form S3 itself uses for non-ASCII user metadata
_ENCODED_PREFIX = "=?UTF-8?B?"
_ENCODED_SUFFIX = "?="


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


def encode_metadata_value(value: str) -> str:
    """Make a metadata value safe for an ``x-amz-meta-*`` header.

    ASCII values pass through untouched; anything else becomes a base64
    encoded-word.
    """
    if value.isascii():
        return value
    encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
    return f"{_ENCODED_PREFIX}{encoded}{_ENCODED_SUFFIX}"


def decode_metadata_value(value: str) -> str:
    if not (value.startswith(_ENCODED_PREFIX) and value.endswith(_ENCODED_SUFFIX)):
        return value
    payload = value[len(_ENCODED_PREFIX) : -len(_ENCODED_SUFFIX)]
    try:
        return base64.b64decode(payload, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3-compatible bucket.

    boto3 is synchronous, so every call runs in a worker thread. Custom metadata
    maps onto S3 user metadata (``x-amz-meta-*``), which only carries ASCII
    strings; other values are stored as encoded-words and decoded on read.
    """

    def __init__(self, bucket: str, client: Any) -> None:
        self.bucket = bucket
        self.client = client

    @classmethod
    def from_settings(
        cls,
        bucket: str,
        endpoint_url: Optional[str],
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        region: str = "auto",
    ) -> "S3ObjectStore":
        client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )
        return cls(bucket, client)

    def _info_from_response(self, key: str, response: dict[str, Any]) -> ObjectInfo:
        return ObjectInfo(
            key=key,
            size=int(response.get("ContentLength", 0)),
            content_type=response.get("ContentType"),
            custom_metadata={
                name: decode_metadata_value(value)
                for name, value in (response.get("Metadata") or {}).items()
            },
            uploaded=response.get("LastModified"),
        )

    def _put_sync(
        self,
        key: str,
        body: bytes,
        content_type: Optional[str],
        custom_metadata: dict[str, str],
    ) -> ObjectInfo:
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "Metadata": {name: encode_metadata_value(value) for name, value in custom_metadata.items()},
        }
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self.client.put_object(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(
                f"Failed to write object '{key}'",
                key=key,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=exc,
            ) from exc
        return ObjectInfo(
            key=key, size=len(body), content_type=content_type, custom_metadata=dict(custom_metadata)
        )

    def _get_sync(self, key: str) -> Optional[StoredObject]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"].read()
        except ClientError as exc:
            if _is_not_found(exc):
                return None
            raise StorageError(f"Failed to read object '{key}'", key=key, original_error=exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to read object '{key}'", key=key, original_error=exc) from exc
        return StoredObject(info=self._info_from_response(key, response), body=body)

    def _head_sync(self, key: str) -> Optional[ObjectInfo]:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                return None
            raise StorageError(f"Failed to stat object '{key}'", key=key, original_error=exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to stat object '{key}'", key=key, original_error=exc) from exc
        return self._info_from_response(key, response)

    def _delete_sync(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(
                f"Failed to delete object '{key}'",
                key=key,
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=exc,
            ) from exc

    def _list_sync(self, prefix: str, limit: int) -> list[ObjectInfo]:
        try:
            response = self.client.list_objects_v2(Bucket=self.bucket, Prefix=prefix, MaxKeys=limit)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to list prefix '{prefix}'", key=prefix, original_error=exc) from exc

        # S3 listings carry no user metadata, so each entry is completed with a HEAD.
        results: list[ObjectInfo] = []
        for entry in response.get("Contents", []):
            info = self._head_sync(entry["Key"])
            if info is not None:
                results.append(info)
        return results

    async def put(
        self,
        key: str,
        body: Body,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> ObjectInfo:
        validate_key(key)
        return await asyncio.to_thread(
            self._put_sync, key, _to_bytes(body), content_type, dict(custom_metadata or {})
        )

    async def get(self, key: str) -> Optional[StoredObject]:
        validate_key(key)
        return await asyncio.to_thread(self._get_sync, key)

    async def head(self, key: str) -> Optional[ObjectInfo]:
        validate_key(key)
        return await asyncio.to_thread(self._head_sync, key)

    async def delete(self, key: str) -> None:
        validate_key(key)
        await asyncio.to_thread(self._delete_sync, key)

    async def list(self, prefix: str, limit: int = 1000) -> list[ObjectInfo]:
        return await asyncio.to_thread(self._list_sync, prefix, limit)
