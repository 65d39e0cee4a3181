"""Services for treesync."""
from .checksum import blake3_file
from .ledger import ProgressLedger
from .object_store import HTTPObjectStore
from .probe import RemoteObjectProbe, RemoteObjectWriter, classify_store_error
from .retry import RetryExecutor

__all__ = [
    "HTTPObjectStore",
    "ProgressLedger",
    "RemoteObjectProbe",
    "RemoteObjectWriter",
    "RetryExecutor",
    "blake3_file",
    "classify_store_error",
]
