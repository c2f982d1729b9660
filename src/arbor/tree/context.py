"""Per-invocation mutable state for one tree load."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from arbor.fs.scanner import Scanner, scan_dir
from arbor.fs.search import Searcher, find_files
from arbor.runtime_logging import BoundLogger, get_runtime_logger
from arbor.tree.nodes import Directory
from arbor.tree.state import TreeState


@dataclass(slots=True)
class TreeContext:
    """State owned by exactly one load; never shared between loads.

    Only the single task driving the load mutates ``folders``, ``linked``
    and ``queue``, one step at a time.
    """

    state: TreeState
    epoch: int = 0
    scanner: Scanner = scan_dir
    searcher: Searcher = find_files
    folders: dict[str, Directory] = field(default_factory=dict)
    linked: set[str] = field(default_factory=set)
    queue: deque[str] = field(default_factory=deque)
    default_expanded: list[str] = field(default_factory=list)
    on_complete: Callable[[], None] | None = None
    completed: bool = False
    logger: BoundLogger | None = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_runtime_logger().bind(epoch=self.epoch, root=self.state.path)

    @property
    def sep(self) -> str:
        return self.state.path_separator

    @property
    def searching(self) -> bool:
        return bool(self.state.search_pattern)

    def expand(self, path: str) -> None:
        if path not in self.default_expanded:
            self.default_expanded.append(path)

    def complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        if self.on_complete is not None:
            self.on_complete()
