"""
treesync - resumable, concurrent sync of a local tree into an object store.

Usage:
    from treesync import HTTPObjectStore, ProgressLedger, RetryPolicy, UploadOrchestrator

    async with HTTPObjectStore(endpoint, bucket) as store:
        orchestrator = UploadOrchestrator(store, ProgressLedger(".treesync/ledger.json"))
        report = await orchestrator.run(source_dir, "assets", 10, RetryPolicy(max_attempts=3))
        print(report.summary())
"""
from .errors import (
    ConfigError,
    ErrorCode,
    FatalError,
    LocalIOError,
    RetryError,
    StoreError,
    SyncError,
    TransientError,
)
from .models import ProbeResult, RetryPolicy, StoreConfig, SyncReport, UploadOutcome, WorkItem
from .orchestrator import TreeCollector, UploadOrchestrator
from .services import (
    HTTPObjectStore,
    ProgressLedger,
    RemoteObjectProbe,
    RemoteObjectWriter,
    RetryExecutor,
)
from .utils.paths import to_remote_key

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "TreeCollector",
    # Models
    "WorkItem",
    "UploadOutcome",
    "RetryPolicy",
    "SyncReport",
    "ProbeResult",
    "StoreConfig",
    # Services
    "HTTPObjectStore",
    "ProgressLedger",
    "RemoteObjectProbe",
    "RemoteObjectWriter",
    "RetryExecutor",
    "to_remote_key",
    # Errors
    "SyncError",
    "ConfigError",
    "LocalIOError",
    "StoreError",
    "TransientError",
    "FatalError",
    "RetryError",
    "ErrorCode",
]
