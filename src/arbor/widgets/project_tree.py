"""Project file tree panel backed by the asynchronous tree loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Tree
from textual.widgets.tree import TreeNode

from arbor.fs.scanner import Scanner, scan_dir
from arbor.fs.search import Searcher, find_files
from arbor.fs.watch import NullWatchManager, WatchManager
from arbor.messages import TreeUpdated
from arbor.runtime_logging import get_runtime_logger
from arbor.tree.loader import TreeLoader, TreeUpdate
from arbor.tree.nodes import Directory, Link, Node
from arbor.tree.pathutil import display_path
from arbor.tree.state import TreeState


def node_label(node: Node) -> str:
    if isinstance(node, Directory):
        label = f"{node.name}/"
    else:
        label = node.name
    if isinstance(node, Link):
        return f"{label} -> {node.target_path or '?'}"
    if node.link_target is not None:
        return f"{label} -> {node.link_target}"
    return label


def node_data(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {"id": node.id, "type": node.kind}
    if isinstance(node, Directory):
        data["loaded"] = node.loaded
    return data


class ProjectTreePanel(Vertical):
    DEFAULT_CSS = """
    ProjectTreePanel {
        height: 1fr;
    }

    ProjectTreePanel Tree {
        height: 1fr;
        border: round $surface-lighten-2;
    }
    """

    def __init__(
        self,
        state: TreeState,
        watch_manager: WatchManager | NullWatchManager | None = None,
        *,
        reveal_path: str | None = None,
        scanner: Scanner = scan_dir,
        searcher: Searcher = find_files,
    ) -> None:
        self.state = state
        self.watch_manager = watch_manager
        self.loader = TreeLoader(self._apply_update, scanner=scanner, searcher=searcher)
        self.logger = get_runtime_logger()
        self._initial_reveal = reveal_path
        self._pending_reveal: str | None = None
        self._tree_nodes: dict[str, TreeNode[dict[str, Any]]] = {}
        self._worker_group = f"project-tree-{id(self)}"
        super().__init__()

    def compose(self) -> ComposeResult:
        yield Tree(display_path(self.state.path), id="tree")

    def on_mount(self) -> None:
        self.refresh_tree(reveal_path=self._initial_reveal)

    def on_unmount(self) -> None:
        if self.watch_manager is not None:
            self.watch_manager.sync([], self._watch_callback)

    def refresh_tree(self, reveal_path: str | None = None) -> None:
        tree = self.query_one(Tree)
        self.state.expanded = self._collect_expanded_ids(tree.root)
        self._pending_reveal = reveal_path
        self.logger.debug(
            "project_tree.refresh.requested",
            root=self.state.path,
            expanded=len(self.state.expanded),
            reveal=reveal_path,
        )
        self.run_worker(
            self.loader.load(self.state, reveal_path=reveal_path),
            group=self._worker_group,
            exclusive=True,
        )

    def reveal(self, path: str | Path) -> None:
        self.refresh_tree(reveal_path=os.path.abspath(path))

    def search(self, term: str | None) -> None:
        term = (term or "").strip()
        self.state.search_pattern = term or None
        self.logger.debug("project_tree.search", term=term)
        self.refresh_tree()

    def on_tree_node_expanded(self, event: Tree.NodeExpanded[dict[str, Any]]) -> None:
        data = event.node.data
        if not isinstance(data, dict) or data.get("type") != "directory":
            return
        if data.get("loaded") or event.node.children or self.state.search_pattern:
            return
        self.logger.debug("project_tree.expand.lazy", parent_id=data["id"])
        self.run_worker(
            self.loader.load(self.state, parent_id=data["id"]),
            group=f"{self._worker_group}-lazy",
        )

    def _apply_update(self, update: TreeUpdate) -> None:
        tree = self.query_one(Tree)
        if update.full:
            self._render_full(tree, update)
        else:
            self._render_children(update)
        self._sync_watches()
        self.post_message(TreeUpdated(update))

    def _render_full(self, tree: Tree[dict[str, Any]], update: TreeUpdate) -> None:
        expanded = set(update.default_expanded) | set(self.state.expanded)
        root = update.nodes[0]
        tree.clear()
        tree.root.set_label(root.name)
        tree.root.data = node_data(root)
        self._tree_nodes = {root.id: tree.root}
        children = root.children if isinstance(root, Directory) else []
        self._add_children(tree.root, children, expanded)
        tree.root.expand()

        if self._pending_reveal is not None:
            target = self._tree_nodes.get(self._pending_reveal)
            if target is not None:
                # Line numbers exist only after the next layout pass.
                tree.call_after_refresh(tree.move_cursor, target)
            self._pending_reveal = None

    def _render_children(self, update: TreeUpdate) -> None:
        target = self._tree_nodes.get(update.parent_id or "")
        if target is None:
            self.logger.debug("project_tree.update.orphaned", parent_id=update.parent_id)
            return
        stack = list(target.children)
        while stack:
            old = stack.pop()
            if isinstance(old.data, dict):
                self._tree_nodes.pop(str(old.data.get("id")), None)
            stack.extend(old.children)
        target.remove_children()
        self._add_children(target, update.nodes, set(update.default_expanded))
        target.data = {**(target.data or {}), "loaded": True}
        target.expand()

    def _add_children(
        self,
        parent: TreeNode[dict[str, Any]],
        nodes: list[Node],
        expanded: set[str],
    ) -> None:
        stack = [(parent, nodes)]
        while stack:
            tree_parent, siblings = stack.pop()
            for node in siblings:
                if isinstance(node, Directory):
                    open_now = node.id in expanded and (node.loaded or bool(node.children))
                    child = tree_parent.add(node_label(node), data=node_data(node), expand=open_now)
                    stack.append((child, node.children))
                else:
                    child = tree_parent.add_leaf(node_label(node), data=node_data(node))
                self._tree_nodes[node.id] = child

    def _sync_watches(self) -> None:
        if self.watch_manager is None or self.state.search_pattern:
            return
        loaded = [
            Path(node_id)
            for node_id, node in self._tree_nodes.items()
            if isinstance(node.data, dict) and node.data.get("loaded")
        ]
        self.watch_manager.sync(loaded, self._watch_callback)

    def _watch_callback(self, path: Path) -> None:
        self.logger.debug("project_tree.watch.callback", path=str(path))
        self.app.call_from_thread(self.refresh_tree)

    def _collect_expanded_ids(self, root: TreeNode[dict[str, Any]]) -> list[str]:
        expanded: list[str] = []
        stack = list(reversed(root.children))
        while stack:
            node = stack.pop()
            data = node.data if isinstance(node.data, dict) else {}
            if node.is_expanded and data.get("type") == "directory":
                expanded.append(str(data["id"]))
            stack.extend(reversed(node.children))
        return expanded
