"""Progress events published by a sync run."""
from typing import Callable, Dict, List
import asyncio
import inspect
import logging
logger = logging.getLogger(__name__)


class SyncEvent:
    """Event names emitted by the orchestrator and item pipelines."""
    START = "start"                  # (total, pending)
    ITEM_START = "item_start"        # (WorkItem)
    ITEM_COMPLETE = "item_complete"  # (UploadOutcome), success or skip
    ITEM_FAIL = "item_fail"          # (UploadOutcome)
    FINISH = "finish"                # (SyncReport)

    ALL = frozenset({START, ITEM_START, ITEM_COMPLETE, ITEM_FAIL, FINISH})


class EventEmitter:
    """
    Dispatches sync events to plain or async listeners.

    Listeners run in subscription order, one event at a time. A failing
    listener is logged and never interrupts the run.
    """

    def __init__(self, strict: bool = True):
        self._listeners: Dict[str, List[Callable]] = {name: [] for name in SyncEvent.ALL}
        self._strict = strict
        self._lock = asyncio.Lock()

    def _check(self, event_name: str) -> None:
        if self._strict and event_name not in SyncEvent.ALL:
            raise ValueError(f"Unknown sync event: {event_name!r}")

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event. Subscribing the same callback twice is a no-op."""
        self._check(event_name)
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    async def emit(self, event_name: str, *args, **kwargs):
        """Call every listener of event_name with the given arguments."""
        self._check(event_name)
        listeners = self._listeners.get(event_name)
        if not listeners:
            return

        async with self._lock:
            for callback in list(listeners):
                try:
                    result = callback(*args, **kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error("Listener %r for %s failed: %s", callback, event_name, e)
