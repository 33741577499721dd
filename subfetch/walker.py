#!/usr/bin/env python3
"""
Library traversal using an explicit FIFO work-list
"""

import logging
from collections import deque
from pathlib import Path
from typing import Iterator, List

logger = logging.getLogger(__name__)


def _list_dir(path: Path) -> List[Path]:
    """Sorted entries of path, or [] (with a warning) if it cannot be read"""
    try:
        return sorted(path.iterdir())
    except OSError as e:
        logger.warning(f"Cannot list {path}: {e}")
        return []


def walk(root: Path, recursive: bool = False) -> Iterator[Path]:
    """
    Yield the files under root

    A root that is itself a file yields only that file. Directory entries are
    visited in name order; sub-directories are expanded only when recursive.
    Iterative, so deep trees never hit the recursion limit.

    Each directory is expanded at most once, keyed by its resolved path, so
    symlinks back to an ancestor (or two links to one folder) cannot make a
    file come out twice.
    """
    root = Path(root)
    if root.is_file():
        yield root
        return

    expanded = {root.resolve()}
    pending = deque(_list_dir(root))
    while pending:
        path = pending.popleft()
        if path.is_dir():
            if not recursive:
                continue
            real = path.resolve()
            if real in expanded:
                logger.debug(f"Already visited {real}, skipping {path}")
                continue
            expanded.add(real)
            pending.extend(_list_dir(path))
            continue
        yield path
