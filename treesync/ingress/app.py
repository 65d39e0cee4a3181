"""FastAPI ingress for ad-hoc single-file uploads."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..errors import SyncError
from ..models import ProbeResult
from ..protocols import IObjectStore
from ..services.probe import RemoteObjectProbe, RemoteObjectWriter
from ..utils.paths import child_key, join_key

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "assets"


def _envelope(status: int, message: str, data: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status, content={"code": status, "message": message, "data": data})


def create_app(store: IObjectStore, prefix: str = DEFAULT_PREFIX, public_base: Optional[str] = None) -> FastAPI:
    """
    Build the ingress app around an already-open store client.

    Not tied to the bulk ledger: each request does its own existence
    check and a single put.
    """
    app = FastAPI(title="treesync ingress")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
        expose_headers=["Content-Length", "Date", "X-Request-Id"],
    )

    probe = RemoteObjectProbe(store)
    writer = RemoteObjectWriter(store)
    base = (public_base or "").rstrip("/")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/upload-static")
    async def upload_static(
        file: UploadFile = File(...),
        targetPath: str = Form(""),
        isReplace: Optional[str] = Form(None),
    ) -> JSONResponse:
        filename = file.filename or "upload"
        key = child_key(join_key(prefix, targetPath), filename)
        data = {
            "name": filename,
            "size": file.size,
            "type": file.content_type,
            "url": f"{base}/{key}" if base else key,
        }
        logger.info("Ingress upload %s -> %s", filename, key)

        try:
            exists = await probe.exists(key)
        except SyncError as exc:
            logger.error("Ingress check failed for %s: %s", key, exc)
            return _envelope(502, str(exc), data)

        if exists is ProbeResult.PRESENT and isReplace != filename:
            return _envelope(409, "File already exists", data)

        try:
            await writer.put(key, file.file)
        except SyncError as exc:
            logger.error("Ingress upload failed for %s: %s", key, exc)
            return _envelope(502, str(exc), data)
        finally:
            await file.close()

        return _envelope(200, "File uploaded", data)

    return app
