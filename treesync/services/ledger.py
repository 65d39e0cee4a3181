"""
ProgressLedger - durable record of work items already handled.

Lets an interrupted run resume without re-checking or re-uploading
completed files. In memory it is a set of identifiers; on disk it is a
JSON list of [local_path, remote_key] pairs in completion order.
"""
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Set, Union

from ..models import WorkItem

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_DIR = Path(".treesync")
DEFAULT_LEDGER_FILE = "ledger.json"


def _write_atomic(path: Path, payload: str) -> None:
    """Write payload next to path, then swap it in with os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class ProgressLedger:
    """
    Append-only identifier set persisted to a JSON file.

    record() is idempotent. flush() persists pending entries; with
    flush_every=1 (default) the orchestrator flushes after every item.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, flush_every: int = 1):
        if flush_every < 1:
            raise ValueError(f"flush_every must be >= 1, got {flush_every}")
        self._path = Path(path) if path else DEFAULT_LEDGER_DIR / DEFAULT_LEDGER_FILE
        self._flush_every = flush_every
        self._entries: Set[str] = set()
        self._order: List[str] = []
        self._pending = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def pending(self) -> int:
        """Entries recorded since the last flush."""
        return self._pending

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._entries

    def has(self, identifier: str) -> bool:
        return identifier in self._entries

    def has_item(self, item: WorkItem) -> bool:
        return item.identifier in self._entries

    def entries(self) -> List[str]:
        """Identifiers in the order they were recorded."""
        return list(self._order)

    def record(self, identifier: str) -> bool:
        """
        Add identifier. Returns True if it was new.
        """
        if identifier in self._entries:
            return False
        self._entries.add(identifier)
        self._order.append(identifier)
        self._pending += 1
        return True

    def record_item(self, item: WorkItem) -> bool:
        return self.record(item.identifier)

    def should_flush(self) -> bool:
        return self._pending >= self._flush_every

    async def load(self) -> None:
        """Load ledger from disk. A missing or unreadable file means an empty ledger."""
        self._entries = set()
        self._order = []
        self._pending = 0

        if not self._path.exists():
            logger.debug("ProgressLedger: No ledger at %s, starting fresh", self._path)
            return

        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
            data = json.loads(raw) if raw.strip() else []
        except json.JSONDecodeError as e:
            logger.warning("ProgressLedger: Failed to parse %s: %s - starting fresh", self._path, e)
            return
        except OSError as e:
            logger.warning("ProgressLedger: Failed to read %s: %s - starting fresh", self._path, e)
            return

        if not isinstance(data, list):
            logger.warning("ProgressLedger: Unexpected content in %s - starting fresh", self._path)
            return

        for entry in data:
            if isinstance(entry, list) and len(entry) == 2:
                identifier = WorkItem(str(entry[0]), str(entry[1])).identifier
            elif isinstance(entry, str):
                identifier = entry
            else:
                logger.debug("ProgressLedger: Ignoring malformed entry %r", entry)
                continue
            if identifier not in self._entries:
                self._entries.add(identifier)
                self._order.append(identifier)

        logger.info("ProgressLedger: Loaded %d entries from %s", len(self._entries), self._path)

    async def flush(self) -> None:
        """Persist all entries. No-op if nothing was recorded since the last flush."""
        if not self._pending:
            return

        pairs = []
        for identifier in self._order:
            item = WorkItem.from_identifier(identifier)
            pairs.append([item.local_path, item.remote_key])
        payload = json.dumps(pairs, ensure_ascii=False, indent=2)

        await asyncio.to_thread(_write_atomic, self._path, payload)
        logger.debug("ProgressLedger: Flushed %d entries (%d new) to %s",
                     len(self._order), self._pending, self._path)
        self._pending = 0

    async def clear(self) -> None:
        """Forget every entry and delete the file. Operator action only."""
        self._entries = set()
        self._order = []
        self._pending = 0
        if self._path.exists():
            await asyncio.to_thread(self._path.unlink)
        logger.info("ProgressLedger: Cleared %s", self._path)
