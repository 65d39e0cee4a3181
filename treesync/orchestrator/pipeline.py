from typing import Optional
import logging

from treesync.errors import RetryError
from treesync.models import ProbeResult, UploadOutcome, WorkItem
from treesync.services.probe import RemoteObjectProbe, RemoteObjectWriter
from treesync.services.retry import RetryExecutor
from treesync.utils.events import EventEmitter, SyncEvent
logger = logging.getLogger(__name__)


class ItemPipeline:
    """
    Existence-check-then-upload for a single WorkItem.

    Each step runs under the retry executor. Every call to process()
    returns exactly one UploadOutcome; errors never escape.
    """

    def __init__(
        self,
        probe: RemoteObjectProbe,
        writer: RemoteObjectWriter,
        executor: RetryExecutor,
        events: Optional[EventEmitter] = None,
    ):
        self._probe = probe
        self._writer = writer
        self._executor = executor
        self._events = events

    async def process(self, item: WorkItem) -> UploadOutcome:
        if self._events:
            await self._events.emit(SyncEvent.ITEM_START, item)

        try:
            outcome = await self._run(item)
        except Exception as e:
            error_msg = str(e) or f"{type(e).__name__}"
            logger.error("Unexpected error for %s: %s", item.remote_key, error_msg)
            outcome = UploadOutcome.fail(item, error_msg)

        if outcome.success:
            status = "Skipped (exists)" if outcome.skipped else "Uploaded"
            logger.info("%s: %s -> %s", status, item.local_path, item.remote_key)
        else:
            logger.warning("Failed: %s -> %s: %s", item.local_path, item.remote_key, outcome.message)

        if self._events:
            event = SyncEvent.ITEM_COMPLETE if outcome.success else SyncEvent.ITEM_FAIL
            await self._events.emit(event, outcome)

        return outcome

    async def _run(self, item: WorkItem) -> UploadOutcome:
        key = item.remote_key

        try:
            checked = await self._executor.run(
                lambda: self._probe.exists(key), label=f"Check {key}"
            )
        except RetryError as e:
            return UploadOutcome.fail(item, f"Check failed: {e}", probe_attempts=e.attempts)

        if checked.value is ProbeResult.PRESENT:
            return UploadOutcome.skip(item, probe_attempts=checked.attempts)

        try:
            put = await self._executor.run(
                lambda: self._writer.put(key, item.local_path), label=f"Upload {key}"
            )
        except RetryError as e:
            return UploadOutcome.fail(
                item,
                f"Upload failed: {e}",
                probe_attempts=checked.attempts,
                put_attempts=e.attempts,
            )

        return UploadOutcome.ok(item, probe_attempts=checked.attempts, put_attempts=put.attempts)
