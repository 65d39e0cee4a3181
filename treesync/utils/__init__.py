"""Utility helpers for treesync."""
from .events import EventEmitter, SyncEvent
from .paths import child_key, join_key, normalize_prefix, to_remote_key

__all__ = ["EventEmitter", "SyncEvent", "child_key", "join_key", "normalize_prefix", "to_remote_key"]
