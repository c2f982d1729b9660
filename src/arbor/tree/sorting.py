"""Deterministic sibling ordering."""

from __future__ import annotations

from arbor.tree.nodes import Directory, Node


def sort_key(node: Node) -> tuple[str, str]:
    # Kind labels sort directory < file < link < unknown.
    return node.kind, node.path


def sort_nodes(nodes: list[Node]) -> None:
    """Sort ``nodes`` in place and every directory's children below them."""
    stack = [nodes]
    while stack:
        siblings = stack.pop()
        siblings.sort(key=sort_key)
        stack.extend(node.children for node in siblings if isinstance(node, Directory))
