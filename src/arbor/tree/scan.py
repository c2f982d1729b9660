"""Sequential, queue-driven folder enumeration."""

from __future__ import annotations

import os

from arbor.fs.scanner import ScanOptions
from arbor.tree.context import TreeContext
from arbor.tree.items import create_item


def scan_options(context: TreeContext) -> ScanOptions:
    state = context.state
    return ScanOptions(
        show_hidden=state.show_hidden,
        respect_gitignore=state.respect_gitignore,
        name_pattern=state.search_pattern or None,
        include_dirs=True,
        depth=1,
    )


async def scan_folder(context: TreeContext, path: str) -> None:
    """Enumerate the direct children of ``path`` into the tree, then mark it loaded."""
    logger = context.logger
    count = 0
    async for entry in context.scanner(path, scan_options(context)):
        try:
            create_item(context, entry.path, entry.kind)
        except OSError as exc:
            logger.warning("tree.item.failed", path=entry.path, error=str(exc))
            continue
        count += 1

    folder = context.folders.get(path)
    if folder is not None:
        folder.loaded = True
    logger.debug("tree.scan.folder", path=path, entries=count)


def next_queued(context: TreeContext) -> str | None:
    while context.queue:
        candidate = context.queue.popleft()
        if not os.path.exists(candidate):
            context.logger.debug("tree.queue.stale", path=candidate)
            continue
        existing = context.folders.get(candidate)
        if existing is not None and existing.loaded:
            continue
        return candidate
    return None


async def scan(context: TreeContext, path: str) -> None:
    """Load ``path`` and then every valid queued folder, one read at a time."""
    next_path: str | None = path
    while next_path is not None:
        await scan_folder(context, next_path)
        next_path = next_queued(context)
    context.complete()
