# pmapi/services/storage.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Callable, List, Optional, Union
from urllib.parse import quote

from pmapi.http.envelope import send_enveloped
from pmapi.http.errors import ApiError, ApiResult
from pmapi.http.transport import FormData, Transport
from pmapi.models.messages import SignedUrl, StorageFile, StorageObject

logger = logging.getLogger("api.storage")

FileInput = Union[bytes, bytearray, Path, BinaryIO]


def _seg(value: str, what: str) -> str:
    if not value or not isinstance(value, str):
        raise ValueError(f"{what} (str) is required")
    return quote(value.strip("/"), safe="/")


def _shape(result: ApiResult, fn: Callable[[Any], Any], target: str) -> ApiResult:
    """Apply fn to successful data; a malformed payload becomes the error."""
    if not result.ok:
        return result
    try:
        result.data = fn(result.data)
    except ValueError as e:
        err = ApiError(
            f"unexpected storage response: {e}",
            status=result.status,
            code="INVALID_RESPONSE",
            details=e,
        )
        logger.warning("storage %s: %s", target, err.message)
        return ApiResult.failure(err)
    return result


def _to_object(bucket: str, payload: Any) -> StorageObject:
    if not isinstance(payload, dict):
        raise ValueError("upload response must be an object")
    data = dict(payload)
    data.setdefault("path", data.get("Key"))
    data.setdefault("bucket", bucket)
    return StorageObject.model_validate(data)


def _to_files(payload: Any) -> List[StorageFile]:
    files = payload.get("files", []) if isinstance(payload, dict) else payload
    return [StorageFile.model_validate(f) for f in (files or [])]


def _to_buckets(payload: Any) -> list:
    if isinstance(payload, dict):
        return list(payload.get("buckets") or [])
    return list(payload or [])


class StorageClient:
    """
    Binary asset helpers. Every call is one self-contained request that
    resolves to an ApiResult; only get_public_url skips the network.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def _send(self, method: str, endpoint: str, operation: str, target: str, **kwargs) -> ApiResult:
        return await send_enveloped(
            self._transport,
            method,
            endpoint,
            logger=logger,
            operation=operation,
            target=target,
            **kwargs,
        )

    async def list_buckets(self) -> ApiResult:
        result = await self._send("GET", "/storage/v1/bucket", "list_buckets", "*")
        return _shape(result, _to_buckets, "list_buckets")

    async def list(self, bucket: str, prefix: str = "") -> ApiResult:
        endpoint = f"/storage/v1/bucket/{_seg(bucket, 'bucket')}"
        if prefix and prefix.strip("/"):
            endpoint += "/" + quote(prefix.strip("/"), safe="/")
        result = await self._send("GET", endpoint, "list", bucket)
        return _shape(result, _to_files, f"list {bucket}")

    async def upload(
        self,
        bucket: str,
        path: str,
        file: FileInput,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> ApiResult:
        endpoint = f"/storage/v1/object/{_seg(bucket, 'bucket')}/{_seg(path, 'path')}"
        form = FormData()
        form.append(
            "file",
            file,
            filename=filename or Path(path).name or None,
            content_type=content_type,
        )
        target = f"{bucket}/{path}"
        result = await self._send("POST", endpoint, "upload", target, body=form)
        return _shape(result, lambda p: _to_object(bucket, p), f"upload {target}")

    async def download(self, bucket: str, path: str) -> ApiResult:
        """data is the raw bytes of the object."""
        endpoint = f"/storage/v1/object/{_seg(bucket, 'bucket')}/{_seg(path, 'path')}"
        return await self._send(
            "GET",
            endpoint,
            "download",
            f"{bucket}/{path}",
            headers={"Accept": "*/*"},
            binary=True,
        )

    def get_public_url(self, bucket: str, path: str) -> str:
        return (
            f"{self._transport.base_url}/storage/v1/object/public/"
            f"{_seg(bucket, 'bucket')}/{_seg(path, 'path')}"
        )

    async def remove(self, bucket: str, paths: List[str]) -> ApiResult:
        if isinstance(paths, str) or not paths:
            raise ValueError("remove expects a non-empty list of paths")
        endpoint = f"/storage/v1/object/delete/{_seg(bucket, 'bucket')}"
        return await self._send(
            "POST", endpoint, "remove", bucket, body={"prefixes": list(paths)}
        )

    async def create_signed_url(
        self, bucket: str, path: str, expires_in: int = 3600, method: str = "GET"
    ) -> ApiResult:
        method = (method or "GET").upper()
        if method not in ("GET", "PUT"):
            raise ValueError("signed url method must be GET or PUT")
        endpoint = f"/storage/v1/sign/{_seg(bucket, 'bucket')}/{_seg(path, 'path')}"
        target = f"{bucket}/{path}"
        result = await self._send(
            "POST",
            endpoint,
            "sign",
            target,
            body={"expiry": int(expires_in), "method": method},
        )
        return _shape(result, SignedUrl.model_validate, f"sign {target}")

    def from_(self, bucket: str) -> "BucketClient":
        return BucketClient(self, bucket)


class BucketClient:
    """StorageClient with the bucket argument bound."""

    def __init__(self, storage: StorageClient, bucket: str) -> None:
        _seg(bucket, "bucket")
        self._storage = storage
        self.bucket = bucket

    async def upload(self, path: str, file: FileInput, filename: Optional[str] = None, content_type: Optional[str] = None) -> ApiResult:
        return await self._storage.upload(self.bucket, path, file, filename, content_type)

    async def download(self, path: str) -> ApiResult:
        return await self._storage.download(self.bucket, path)

    def get_public_url(self, path: str) -> str:
        return self._storage.get_public_url(self.bucket, path)

    async def remove(self, paths: List[str]) -> ApiResult:
        return await self._storage.remove(self.bucket, paths)

    async def list(self, prefix: str = "") -> ApiResult:
        return await self._storage.list(self.bucket, prefix)

    async def create_signed_url(self, path: str, expires_in: int = 3600, method: str = "GET") -> ApiResult:
        return await self._storage.create_signed_url(self.bucket, path, expires_in, method)
