"""Node construction and parent linkage."""

from __future__ import annotations

import os
import re
import stat

from arbor.tree.context import TreeContext
from arbor.tree.nodes import DIRECTORY, FILE, LINK, UNKNOWN, Directory, File, Link, Node, Unknown
from arbor.tree.pathutil import split_path

_EXTENSION_RE = re.compile(r"\.([A-Za-z0-9]+)$")


def classify(mode: int) -> str:
    if stat.S_ISLNK(mode):
        return LINK
    if stat.S_ISDIR(mode):
        return DIRECTORY
    if stat.S_ISREG(mode):
        return FILE
    return UNKNOWN


def file_extension(name: str) -> str | None:
    match = _EXTENSION_RE.search(name)
    return match.group(1) if match else None


def resolve_link(path: str) -> tuple[str | None, str | None]:
    """Return ``(real_path, kind_of_target)`` for a symlink; ``None`` parts when dangling."""
    try:
        target = os.path.realpath(path, strict=True)
    except (OSError, RuntimeError):
        return None, None
    try:
        return target, classify(os.stat(target).st_mode)
    except OSError:
        return target, None


def build_node(context: TreeContext, path: str, kind: str | None = None) -> Node:
    """Construct an unattached node; raises ``OSError`` when ``path`` cannot be classified."""
    parent_path, name = split_path(path, context.sep)
    if kind is None:
        kind = classify(os.lstat(path).st_mode)

    link_target: str | None = None
    if kind == LINK:
        target, target_kind = resolve_link(path)
        if target_kind in (DIRECTORY, FILE):
            link_target = target
            kind = target_kind
        else:
            return Link(
                id=path,
                name=name,
                parent_path=parent_path,
                path=path,
                target_path=target,
                resolved_type=target_kind,
            )

    if kind == DIRECTORY:
        folder = Directory(id=path, name=name, parent_path=parent_path, path=path, link_target=link_target)
        context.folders[path] = folder
        if context.searching:
            context.expand(path)
        return folder
    if kind == FILE:
        return File(
            id=path,
            name=name,
            parent_path=parent_path,
            path=path,
            link_target=link_target,
            extension=file_extension(name),
        )
    return Unknown(id=path, name=name, parent_path=parent_path, path=path)


def attach(context: TreeContext, node: Node) -> None:
    """Link ``node`` under its parent, creating missing ancestor folders on the way up."""
    current = node
    while current.id not in context.linked and current.parent_path is not None:
        parent = context.folders.get(current.parent_path)
        created = parent is None
        if parent is None:
            parent = build_node(context, current.parent_path, DIRECTORY)
        parent.children.append(current)  # type: ignore[union-attr]
        context.linked.add(current.id)
        if not created:
            break
        current = parent


def create_item(context: TreeContext, path: str, kind: str | None = None) -> Node:
    existing = context.folders.get(path)
    if existing is not None:
        attach(context, existing)
        return existing

    node = build_node(context, path, kind)
    attach(context, node)
    return node
