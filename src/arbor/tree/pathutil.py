"""String path helpers that honour a configurable separator."""

from __future__ import annotations

import os


def strip_trailing(path: str, sep: str = os.sep) -> str:
    """Drop trailing separators, keeping a bare filesystem root."""
    if len(path) > 1:
        return path.rstrip(sep) or sep
    return path


def split_path(path: str, sep: str = os.sep) -> tuple[str | None, str]:
    """Split ``path`` into ``(parent, name)``; the filesystem root has no parent."""
    path = strip_trailing(path, sep)
    index = path.rfind(sep)
    if index < 0:
        return None, path
    if path == sep:
        return None, path
    parent = path[:index] or sep
    name = path[index + 1 :]
    return parent, name


def join(parent: str, name: str, sep: str = os.sep) -> str:
    if parent.endswith(sep):
        return parent + name
    return parent + sep + name


def ancestors(path: str, sep: str = os.sep) -> list[str]:
    """Folders leading to ``path``, nearest to the filesystem root first.

    ``/r/a/b/c.txt`` gives ``["/r", "/r/a", "/r/a/b"]``.
    """
    parts = [part for part in path.split(sep) if part]
    result: list[str] = []
    current = "" if path.startswith(sep) else None
    for part in parts[:-1]:
        current = part if current is None else current + sep + part
        result.append(current)
    return result


def is_within(path: str, root: str, sep: str = os.sep) -> bool:
    if path == root:
        return True
    prefix = root if root.endswith(sep) else root + sep
    return path.startswith(prefix)


def display_path(path: str) -> str:
    home = os.path.expanduser("~")
    if home and home != "~" and is_within(path, home):
        return "~" + path[len(home) :]
    return path
