"""Entry point that turns a view state into a sorted node tree."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field

from arbor.fs.scanner import Scanner, scan_dir
from arbor.fs.search import Searcher, find_files
from arbor.runtime_logging import get_runtime_logger
from arbor.tree.context import TreeContext
from arbor.tree.expansion import resolve_load_queue
from arbor.tree.items import build_node
from arbor.tree.nodes import DIRECTORY, Directory, Node
from arbor.tree.pathutil import display_path, strip_trailing
from arbor.tree.scan import scan
from arbor.tree.search import search, search_request
from arbor.tree.sorting import sort_nodes
from arbor.tree.state import TreeState


@dataclass(slots=True)
class TreeUpdate:
    """One emission to the view.

    ``parent_id`` is ``None`` for a full-tree replacement (``nodes`` holds the
    root) and the expanded folder's id for an incremental update (``nodes``
    holds its children).
    """

    nodes: list[Node]
    parent_id: str | None = None
    default_expanded: list[str] = field(default_factory=list)
    epoch: int = 0
    stale: bool = False

    @property
    def full(self) -> bool:
        return self.parent_id is None


TreeSink = Callable[[TreeUpdate], None]


class TreeLoader:
    """Builds trees for one view.

    Loads never share state. Each gets an epoch; a load that finishes after a
    newer full load (or a newer load of the same folder) started is marked
    stale and is not emitted to ``sink``.
    """

    def __init__(
        self,
        sink: TreeSink | None = None,
        *,
        before_render: Callable[[], None] | None = None,
        scanner: Scanner = scan_dir,
        searcher: Searcher = find_files,
    ) -> None:
        self.sink = sink
        self.before_render = before_render
        self.scanner = scanner
        self.searcher = searcher
        self.logger = get_runtime_logger()
        self._epochs = itertools.count(1)
        self._latest_full = 0
        self._latest_by_parent: dict[str, int] = {}

    def is_stale(self, epoch: int, parent_id: str | None) -> bool:
        newest = self._latest_full
        if parent_id is not None:
            newest = max(newest, self._latest_by_parent.get(parent_id, 0))
        return epoch < newest

    async def load(
        self,
        state: TreeState,
        parent_id: str | None = None,
        reveal_path: str | None = None,
    ) -> TreeUpdate:
        if parent_id is not None:
            parent_id = strip_trailing(parent_id, state.path_separator)
        epoch = next(self._epochs)
        if parent_id is None:
            self._latest_full = epoch
        else:
            self._latest_by_parent[parent_id] = epoch

        context = TreeContext(state=state, epoch=epoch, scanner=self.scanner, searcher=self.searcher)
        root_path = strip_trailing(state.path, state.path_separator)
        load_path = parent_id or root_path
        root = build_node(context, load_path, DIRECTORY)
        assert isinstance(root, Directory)
        root.loaded = True
        context.linked.add(root.id)
        context.expand(root_path)
        if parent_id is None:
            root.name = display_path(root.path)

        context.logger.info(
            "tree.load.start",
            path=load_path,
            lazy=parent_id is not None,
            search=state.search_pattern,
            reveal=reveal_path,
        )

        result: list[TreeUpdate] = []

        def complete() -> None:
            sort_nodes(root.children)
            if parent_id is not None:
                update = TreeUpdate(
                    nodes=list(root.children),
                    parent_id=parent_id,
                    default_expanded=list(context.default_expanded),
                    epoch=epoch,
                )
            else:
                update = TreeUpdate(
                    nodes=[root],
                    default_expanded=list(context.default_expanded),
                    epoch=epoch,
                )
            result.append(update)
            self._emit(update, context)

        context.on_complete = complete

        if context.searching:
            await search(context, search_request(context, root.path))
        else:
            if parent_id is None:
                plan = resolve_load_queue(load_path, state.expanded, reveal_path, context.sep)
                context.queue.extend(plan.queue)
                for folder in plan.reveal_expanded:
                    context.expand(folder)
            await scan(context, load_path)

        return result[0]

    def _emit(self, update: TreeUpdate, context: TreeContext) -> None:
        if self.is_stale(update.epoch, update.parent_id):
            update.stale = True
            context.logger.info("tree.load.stale", parent_id=update.parent_id)
            return

        context.logger.info(
            "tree.load.complete",
            parent_id=update.parent_id,
            nodes=len(update.nodes),
            folders=len(context.folders),
        )
        if update.full and self.before_render is not None:
            self.before_render()
        if self.sink is not None:
            self.sink(update)
