"""
BMS Chart Fixer - File Enumeration

Turns a user supplied path into the list of files to inspect.  A file path
yields itself; a directory is walked with an explicit stack and every file
found at any depth is yielded.  Anything else (missing path, broken
symlink, FIFO, device) is reported with :class:`InvalidPathError`.

Symlinked directories are never descended into, so symlink loops cannot
make the walk run forever.  Symlinks to regular files are yielded.
"""

import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from loguru import logger

from bms_fixer.config import CHART_EXTENSIONS

PathLike = Union[str, Path]


class InvalidPathError(Exception):
    """The path is neither a regular file nor a directory."""

    def __init__(self, path: PathLike):
        self.path = str(path)
        super().__init__(f"invalid file type, path: {self.path}")


def iter_files(root: PathLike) -> Iterator[Path]:
    """
    Yield every file under *root*.

    Order inside a directory follows entry names, but the overall order is
    a depth-first walk; sort the result when a stable order matters.
    ``OSError`` raised while listing a directory is propagated as-is.
    """
    root_path = Path(root)
    if root_path.is_file():
        yield root_path
        return
    if not root_path.is_dir():
        raise InvalidPathError(root_path)

    stack: List[Path] = [root_path]
    while stack:
        current = stack.pop()
        with os.scandir(current) as it:
            entries = sorted(it, key=lambda e: e.name)

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                stack.append(Path(entry.path))
            elif entry.is_file():
                yield Path(entry.path)
            elif entry.is_symlink() and entry.is_dir():
                logger.warning("Not following symlinked directory: {}", entry.path)
            else:
                raise InvalidPathError(entry.path)


def get_file_lists(root: PathLike) -> List[Path]:
    """Collect :func:`iter_files` into a list."""
    return list(iter_files(root))


def is_chart_file(path: PathLike, extensions: Optional[Iterable[str]] = None) -> bool:
    """Whether *path* has one of the chart extensions (case-insensitive)."""
    exts = tuple(extensions) if extensions is not None else CHART_EXTENSIONS
    return Path(path).suffix.lower() in exts


def find_chart_files(
    root: PathLike, extensions: Optional[Iterable[str]] = None
) -> List[Path]:
    """Return the sorted chart files under *root*."""
    exts = tuple(extensions) if extensions is not None else CHART_EXTENSIONS
    charts = [p for p in iter_files(root) if is_chart_file(p, exts)]
    charts.sort()
    logger.debug("Found {} chart file(s) under {}", len(charts), root)
    return charts


def unique_paths(paths: Iterable[PathLike]) -> List[Path]:
    """
    Drop paths that point at a file already seen, keeping first-seen order.

    Overlapping targets (``songs/`` and ``songs/a.bms``) would otherwise hand
    the same chart to two workers.
    """
    seen: Dict[Path, Path] = {}
    for p in paths:
        path = Path(p)
        seen.setdefault(path.resolve(), path)
    return list(seen.values())
