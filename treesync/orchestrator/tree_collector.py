"""Local tree collection for sync runs."""
import logging
import os
from pathlib import Path
from typing import Iterator, List, Union

from ..errors import LocalIOError
from ..models import WorkItem
from ..utils.paths import child_key, normalize_prefix

logger = logging.getLogger(__name__)


def _list_dir(path: str) -> List[os.DirEntry]:
    try:
        with os.scandir(path) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise LocalIOError(f"Cannot list {path}: {e}") from e


class TreeCollector:
    """Collects regular files from a local tree as WorkItems."""

    @staticmethod
    def iter_items(root: Union[str, Path], prefix: str = "") -> Iterator[WorkItem]:
        """
        Walk root depth-first and yield one WorkItem per regular file.

        Entries are visited in name order so the sequence is deterministic
        for a given directory state. Directories are descended into but
        never yielded; symlinked directories are not followed. Only one
        listing per open directory level is held in memory.

        Raises:
            LocalIOError: if root or any directory below it cannot be listed
        """
        root = os.fspath(root)
        if not os.path.isdir(root):
            raise LocalIOError(f"Not a directory: {root}")

        stack = [(iter(_list_dir(root)), normalize_prefix(prefix))]
        while stack:
            entries, remote_dir = stack[-1]
            entry = next(entries, None)
            if entry is None:
                stack.pop()
                continue

            remote_key = child_key(remote_dir, entry.name)
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append((iter(_list_dir(entry.path)), remote_key))
                elif entry.is_file():
                    yield WorkItem(local_path=entry.path, remote_key=remote_key)
                else:
                    logger.debug("Skipping non-regular entry: %s", entry.path)
            except OSError as e:
                raise LocalIOError(f"Cannot stat {entry.path}: {e}") from e

    @classmethod
    def collect(cls, root: Union[str, Path], prefix: str = "") -> List[WorkItem]:
        """
        Collect all work items under root.

        Args:
            root: Local directory to scan
            prefix: Remote prefix prepended to every key

        Returns:
            List of WorkItems in traversal order
        """
        items = list(cls.iter_items(root, prefix))
        logger.debug("TreeCollector: %d file(s) under %s", len(items), root)
        return items
