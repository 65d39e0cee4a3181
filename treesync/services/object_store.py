"""
HTTP object store client.

Talks to a bucket-style object store over plain HTTP verbs:
HEAD to check a key, PUT to store it. Every failure is surfaced as a
StoreError with a structured code, so callers can classify it without
knowing anything about httpx.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, Dict, Optional
from urllib.parse import quote

import httpx

from ..errors import ErrorCode, StoreError
from ..models import StoreConfig
from ..protocols import PutSource
from .checksum import CHUNK_SIZE, blake3_file

logger = logging.getLogger(__name__)

CHECKSUM_HEADER = "x-content-blake3"


def status_to_code(status: int) -> str:
    """Map an HTTP error status to a structured store error code."""
    if status == 404:
        return ErrorCode.NOT_FOUND
    if status in (408, 504):
        return ErrorCode.TIMEOUT
    if status in (502, 503):
        return ErrorCode.GENERIC_TRANSPORT
    if status in (401, 403):
        return ErrorCode.ACCESS_DENIED
    if status == 400:
        return ErrorCode.INVALID_ARGUMENT
    if status in (413, 507):
        return ErrorCode.QUOTA_EXCEEDED
    return f"HTTP_{status}"


def transport_to_code(exc: httpx.TransportError) -> str:
    """Map an httpx transport exception to a structured store error code."""
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCode.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ErrorCode.HOST_UNREACHABLE
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError)):
        return ErrorCode.CONNECTION_RESET
    return ErrorCode.GENERIC_TRANSPORT


async def _iter_chunks(fileobj: BinaryIO) -> AsyncIterator[bytes]:
    """Read a binary file object in chunks without blocking the event loop."""
    while True:
        chunk = await asyncio.to_thread(fileobj.read, CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


async def _iter_path(path: Path) -> AsyncIterator[bytes]:
    f = await asyncio.to_thread(open, path, "rb")
    try:
        async for chunk in _iter_chunks(f):
            yield chunk
    finally:
        f.close()


class HTTPObjectStore:
    """
    Remote store client over httpx.

    Implements IObjectStore protocol.

    Usage:
        async with HTTPObjectStore.from_config(store_config) as store:
            meta = await store.head_object("assets/a.txt")
            await store.put_object("assets/a.txt", Path("a.txt"))
    """

    def __init__(
        self,
        endpoint: str,
        bucket: str = "",
        access_key_id: Optional[str] = None,
        access_key_secret: Optional[str] = None,
        timeout: float = 30.0,
        send_checksum: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._endpoint = endpoint.rstrip("/")
        self._bucket = bucket.strip("/")
        self._auth = (
            httpx.BasicAuth(access_key_id, access_key_secret or "")
            if access_key_id
            else None
        )
        self._timeout = timeout
        self._send_checksum = send_checksum
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: StoreConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        return cls(
            endpoint=config.endpoint,
            bucket=config.bucket,
            access_key_id=config.access_key_id,
            access_key_secret=config.access_key_secret,
            timeout=config.timeout,
            send_checksum=config.send_checksum,
            transport=transport,
        )

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=self._timeout,
            auth=self._auth,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def object_url(self, key: str) -> str:
        """Path of an object relative to the endpoint."""
        quoted = quote(key.lstrip("/"), safe="/")
        if self._bucket:
            return f"/{self._bucket}/{quoted}"
        return f"/{quoted}"

    def public_url(self, key: str) -> str:
        return f"{self._endpoint}{self.object_url(key)}"

    async def _request(self, method: str, key: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPObjectStore not initialized. Use 'async with' context.")

        try:
            response = await self._client.request(method, self.object_url(key), **kwargs)
        except httpx.TransportError as exc:
            code = transport_to_code(exc)
            raise StoreError(code, f"{method} {key}: {exc or type(exc).__name__}") from exc

        if response.status_code >= 400:
            code = status_to_code(response.status_code)
            detail = response.text if method != "HEAD" else ""
            message = f"{method} {key}: HTTP {response.status_code}"
            if detail:
                message = f"{message} {detail[:200]}"
            raise StoreError(code, message, status=response.status_code)

        return response

    async def head_object(self, key: str) -> Dict[str, Any]:
        response = await self._request("HEAD", key)
        length = response.headers.get("content-length")
        return {
            "key": key,
            "size": int(length) if length and length.isdigit() else None,
            "etag": response.headers.get("etag"),
            "last_modified": response.headers.get("last-modified"),
        }

    async def put_object(self, key: str, source: PutSource) -> Dict[str, Any]:
        headers: Dict[str, str] = {}

        if isinstance(source, (str, Path)):
            path = Path(source)
            headers["Content-Length"] = str(path.stat().st_size)
            if self._send_checksum:
                headers[CHECKSUM_HEADER] = await blake3_file(path)
            content = _iter_path(path)
        else:
            if source.seekable():
                source.seek(0)
            content = _iter_chunks(source)

        logger.debug("PUT %s (%s)", key, headers.get("Content-Length", "streamed"))
        response = await self._request("PUT", key, content=content, headers=headers)
        return {"key": key, "etag": response.headers.get("etag")}
