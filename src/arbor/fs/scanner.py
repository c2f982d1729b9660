"""Asynchronous directory enumeration feeding the tree loader."""

from __future__ import annotations

import asyncio
import os
import re
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path

from arbor.fs.filtering import PathFilter
from arbor.runtime_logging import get_runtime_logger


@dataclass(slots=True)
class ScanOptions:
    show_hidden: bool = False
    respect_gitignore: bool = True
    name_pattern: str | None = None
    include_dirs: bool = True
    depth: int = 1


@dataclass(slots=True)
class ScanEntry:
    path: str
    # None leaves classification to the tree's own lstat.
    kind: str | None


Scanner = Callable[[str, ScanOptions], AsyncIterator[ScanEntry]]


def entry_kind(entry: os.DirEntry) -> str:
    try:
        if entry.is_symlink():
            return "link"
        if entry.is_dir(follow_symlinks=False):
            return "directory"
        if entry.is_file(follow_symlinks=False):
            return "file"
    except OSError:
        pass
    return "unknown"


def list_entries(path: str, options: ScanOptions) -> list[ScanEntry]:
    """Blocking walk of ``path`` down to ``options.depth`` levels."""
    logger = get_runtime_logger()
    pattern = re.compile(options.name_pattern) if options.name_pattern else None
    filters: dict[str, PathFilter] = {}
    entries: list[ScanEntry] = []
    pending = [(path, 1)]

    while pending:
        folder, level = pending.pop(0)
        try:
            with os.scandir(folder) as iterator:
                children = list(iterator)
        except OSError as exc:
            logger.warning("scan.dir.failed", path=folder, error=str(exc))
            continue

        path_filter: PathFilter | None = None
        if options.respect_gitignore:
            path_filter = filters.get(folder)
            if path_filter is None:
                path_filter = filters[folder] = PathFilter(Path(folder))

        for child in children:
            if not options.show_hidden and child.name.startswith("."):
                continue
            kind = entry_kind(child)
            is_dir = kind == "directory"
            if path_filter is not None and not path_filter.include(Path(child.path), is_dir):
                continue
            if is_dir and level < options.depth:
                pending.append((child.path, level + 1))
            if is_dir and not options.include_dirs:
                continue
            if pattern is not None and not pattern.search(child.name):
                continue
            entries.append(ScanEntry(path=child.path, kind=kind))

    return entries


async def scan_dir(path: str, options: ScanOptions) -> AsyncIterator[ScanEntry]:
    entries = await asyncio.to_thread(list_entries, path, options)
    for entry in entries:
        yield entry
