"""Local path to remote key mapping."""
from typing import Optional


def to_remote_key(path: str) -> str:
    """
    Map a local relative path to a remote key.

    Every backslash becomes a forward slash. Case and characters are
    kept as-is (no percent-encoding), so the mapping is idempotent.
    """
    return path.replace("\\", "/")


def normalize_prefix(prefix: Optional[str]) -> str:
    """Strip surrounding whitespace and slashes from a remote prefix."""
    if prefix is None:
        return ""
    value = to_remote_key(prefix.strip())
    if value in {"", "/"}:
        return ""
    return value.strip("/")


def join_key(*parts: Optional[str]) -> str:
    """Join remote key segments with single forward slashes, skipping empty ones."""
    segments = []
    for part in parts:
        value = normalize_prefix(part)
        if value:
            segments.append(value)
    return "/".join(segments)


def child_key(parent: str, name: str) -> str:
    """
    Append one path segment to an already-normalized key.

    The name is only slash-mapped, never trimmed, so distinct local names
    always give distinct keys.
    """
    name = to_remote_key(name)
    return f"{parent}/{name}" if parent else name
