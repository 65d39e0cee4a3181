"""
Protocols (Interfaces) for Dependency Inversion.

The orchestrator and ingress only depend on these small interfaces,
so any remote store client can be plugged in.
"""
from pathlib import Path
from typing import Any, BinaryIO, Dict, Protocol, Union, runtime_checkable

PutSource = Union[str, Path, BinaryIO]


@runtime_checkable
class IObjectStore(Protocol):
    """Interface for remote object store operations."""

    async def head_object(self, key: str) -> Dict[str, Any]:
        """Return object metadata, or raise StoreError (code NoSuchKey if absent)."""
        ...

    async def put_object(self, key: str, source: PutSource) -> Dict[str, Any]:
        """Store a local file or stream under key. Returns {"key": ...}."""
        ...
