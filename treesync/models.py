"""
Models for treesync.

Immutable dataclasses for work units, outcomes and run configuration.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

# NUL cannot appear in a legitimate path on any supported platform
ENTRY_SEPARATOR = "\0"


class ProbeResult(Enum):
    """Outcome of a remote existence check."""
    PRESENT = "present"
    ABSENT = "absent"


@dataclass(frozen=True)
class WorkItem:
    """One (local path, remote key) unit of synchronization work."""
    local_path: str
    remote_key: str

    @property
    def identifier(self) -> str:
        """Ledger identifier derived from the pair."""
        return f"{self.local_path}{ENTRY_SEPARATOR}{self.remote_key}"

    @classmethod
    def from_identifier(cls, identifier: str) -> "WorkItem":
        local_path, _, remote_key = identifier.partition(ENTRY_SEPARATOR)
        return cls(local_path=local_path, remote_key=remote_key)


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of one WorkItem pipeline."""
    item: WorkItem
    success: bool
    skipped: bool = False
    attempts: int = 0
    message: str = ""
    probe_attempts: int = 0
    put_attempts: int = 0

    @property
    def uploaded(self) -> bool:
        return self.success and not self.skipped

    @classmethod
    def skip(cls, item: WorkItem, probe_attempts: int):
        return cls(
            item=item,
            success=True,
            skipped=True,
            attempts=probe_attempts,
            message="Already exists, skipped",
            probe_attempts=probe_attempts,
        )

    @classmethod
    def ok(cls, item: WorkItem, probe_attempts: int, put_attempts: int):
        return cls(
            item=item,
            success=True,
            skipped=False,
            attempts=max(probe_attempts, put_attempts),
            message="Uploaded",
            probe_attempts=probe_attempts,
            put_attempts=put_attempts,
        )

    @classmethod
    def fail(cls, item: WorkItem, message: str, probe_attempts: int = 0, put_attempts: int = 0):
        return cls(
            item=item,
            success=False,
            skipped=False,
            attempts=max(probe_attempts, put_attempts),
            message=message,
            probe_attempts=probe_attempts,
            put_attempts=put_attempts,
        )


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget for transient failures.

    max_attempts is the number of retries after the first invocation.
    The delay before retry n (1-indexed) is base_delay_ms * n.
    """
    max_attempts: int = 3
    base_delay_ms: int = 1000

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.base_delay_ms <= 0:
            raise ValueError(f"base_delay_ms must be > 0, got {self.base_delay_ms}")

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds after the given failed attempt."""
        return self.base_delay_ms * attempt / 1000


@dataclass(frozen=True)
class Attempted(Generic[T]):
    """Value returned by a retried operation plus the attempts it took."""
    value: T
    attempts: int


@dataclass
class SyncReport:
    """Aggregate result of an orchestrator run."""
    total: int
    already_done: int
    outcomes: List[UploadOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def dispatched(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def uploaded(self) -> int:
        return sum(1 for o in self.outcomes if o.uploaded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def failures(self) -> List[UploadOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def all_success(self) -> bool:
        return self.failed == 0

    def failed_items(self) -> List[Tuple[WorkItem, str]]:
        return [(o.item, o.message) for o in self.failures]

    def summary(self) -> dict:
        return {
            "total": self.total,
            "success": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class StoreConfig:
    """Immutable connection settings for the remote store."""
    endpoint: str
    bucket: str
    access_key_id: Optional[str] = None
    access_key_secret: Optional[str] = None
    timeout: float = 30.0
    send_checksum: bool = True
