"""Core orchestrator - schedules per-file sync pipelines."""
import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set, Union

from ..models import RetryPolicy, SyncReport, UploadOutcome, WorkItem
from ..protocols import IObjectStore
from ..services.ledger import ProgressLedger
from ..services.probe import RemoteObjectProbe, RemoteObjectWriter
from ..services.retry import RetryExecutor
from ..utils.events import EventEmitter, SyncEvent
from .pipeline import ItemPipeline
from .tree_collector import TreeCollector

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Synchronizes a local tree into a remote prefix.

    Collects the tree, drops items already in the ledger, then keeps at most
    concurrency_limit pipelines in flight, starting a new one as soon as any
    finishes. Completed items are recorded in the ledger as they arrive.

    Usage:
        async with HTTPObjectStore.from_config(store_config) as store:
            orchestrator = UploadOrchestrator(store, ProgressLedger(ledger_path))
            orchestrator.on("item_complete", print)
            report = await orchestrator.run(source, "assets", 10, RetryPolicy())
    """

    def __init__(
        self,
        store: IObjectStore,
        ledger: Optional[ProgressLedger] = None,
        events: Optional[EventEmitter] = None,
        record_failures: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            store: Remote object store client
            ledger: Progress ledger (default: ./.treesync/ledger.json)
            events: Event emitter for progress notifications
            record_failures: Also record terminal failures in the ledger
            sleep: Backoff sleep, replaceable in tests
        """
        self._probe = RemoteObjectProbe(store)
        self._writer = RemoteObjectWriter(store)
        self._ledger = ledger or ProgressLedger()
        self._events = events or EventEmitter()
        self._record_failures = record_failures
        self._sleep = sleep

    @property
    def ledger(self) -> ProgressLedger:
        return self._ledger

    @property
    def events(self) -> EventEmitter:
        return self._events

    def on(self, event_name: str, callback: Callable):
        """
        Subscribe to progress events.

        Events: start(total, pending), item_start(WorkItem),
        item_complete(UploadOutcome), item_fail(UploadOutcome), finish(SyncReport)
        """
        self._events.on(event_name, callback)

    async def run(
        self,
        root: Union[str, Path],
        prefix: str,
        concurrency_limit: int,
        retry_policy: RetryPolicy,
    ) -> SyncReport:
        """
        Sync root into prefix.

        Raises:
            LocalIOError: if the tree cannot be listed (nothing is dispatched)
        """
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")

        started = time.monotonic()

        items = await asyncio.to_thread(TreeCollector.collect, root, prefix)
        await self._ledger.load()

        pending = self._filter_pending(items)
        already_done = len(items) - len(pending)
        report = SyncReport(total=len(items), already_done=already_done)

        logger.info(
            "Found %d file(s), %d already done, %d to sync (concurrency: %d, retries: %d)",
            len(items), already_done, len(pending), concurrency_limit, retry_policy.max_attempts
        )
        await self._events.emit(SyncEvent.START, len(items), len(pending))

        pipeline = ItemPipeline(
            self._probe,
            self._writer,
            RetryExecutor(retry_policy, sleep=self._sleep),
            self._events,
        )

        in_flight: Set[asyncio.Task] = set()
        try:
            for item in pending:
                if len(in_flight) >= concurrency_limit:
                    in_flight = await self._drain(in_flight, report)
                in_flight.add(asyncio.create_task(pipeline.process(item)))

            while in_flight:
                in_flight = await self._drain(in_flight, report)
        finally:
            if in_flight:
                for task in in_flight:
                    task.cancel()
                await asyncio.gather(*in_flight, return_exceptions=True)
            await self._ledger.flush()

        report.elapsed = time.monotonic() - started
        self._log_report(report)
        await self._events.emit(SyncEvent.FINISH, report)
        return report

    def _filter_pending(self, items: List[WorkItem]) -> List[WorkItem]:
        """Drop items already in the ledger and duplicates of the same pair."""
        pending = []
        seen = set()
        for item in items:
            identifier = item.identifier
            if identifier in seen or self._ledger.has(identifier):
                continue
            seen.add(identifier)
            pending.append(item)
        return pending

    async def _drain(self, in_flight: Set[asyncio.Task], report: SyncReport) -> Set[asyncio.Task]:
        """Wait for at least one pipeline to finish and record what finished."""
        done, still_running = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            await self._complete(task.result(), report)
        return still_running

    async def _complete(self, outcome: UploadOutcome, report: SyncReport) -> None:
        report.outcomes.append(outcome)

        if outcome.success or self._record_failures:
            self._ledger.record_item(outcome.item)
            if self._ledger.should_flush():
                await self._ledger.flush()

        logger.debug(
            "[%d/%d] %s: %s",
            len(report.outcomes), report.total - report.already_done,
            outcome.message, outcome.item.remote_key
        )

    @staticmethod
    def _log_report(report: SyncReport) -> None:
        logger.info(
            "Sync complete: %d total, %d uploaded, %d skipped, %d failed, %d already done (%.1fs)",
            report.total, report.uploaded, report.skipped, report.failed,
            report.already_done, report.elapsed
        )
        for outcome in report.failures:
            logger.error("Failed: %s: %s", outcome.item.remote_key, outcome.message)
