"""
Remote object probe and classified writer.

Both wrap a single remote call and translate raw StoreError codes into
TransientError or FatalError, so the retry executor only has to look at
the exception type.
"""
import logging
from typing import Optional

from ..errors import ErrorCode, FatalError, StoreError, SyncError, TransientError
from ..models import ProbeResult
from ..protocols import IObjectStore, PutSource

logger = logging.getLogger(__name__)


def classify_store_error(exc: StoreError) -> SyncError:
    """Convert a raw store error into TransientError or FatalError."""
    if exc.code in ErrorCode.TRANSIENT:
        return TransientError(exc.message, code=exc.code)
    return FatalError(exc.message, code=exc.code)


class RemoteObjectProbe:
    """Checks whether a key exists in the remote store."""

    def __init__(self, store: IObjectStore):
        self._store = store

    async def exists(self, remote_key: str) -> ProbeResult:
        """
        Check remote_key.

        Returns:
            PRESENT or ABSENT

        Raises:
            TransientError: network-level failure, worth retrying
            FatalError: any other failure
        """
        try:
            await self._store.head_object(remote_key)
        except StoreError as exc:
            if exc.code == ErrorCode.NOT_FOUND:
                return ProbeResult.ABSENT
            error = classify_store_error(exc)
            logger.debug("Probe failed for %s: [%s] %s", remote_key, exc.code, exc.message)
            raise error from exc
        return ProbeResult.PRESENT


class RemoteObjectWriter:
    """Stores one object and classifies failures the same way as the probe."""

    def __init__(self, store: IObjectStore):
        self._store = store

    async def put(self, remote_key: str, source: PutSource) -> Optional[str]:
        try:
            result = await self._store.put_object(remote_key, source)
        except StoreError as exc:
            logger.debug("Put failed for %s: [%s] %s", remote_key, exc.code, exc.message)
            raise classify_store_error(exc) from exc
        return (result or {}).get("key", remote_key)
