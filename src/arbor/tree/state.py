"""View state handed to the loader by the presentation layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from arbor.config.models import AppSettings, FilterSettings
from arbor.tree.pathutil import strip_trailing


@dataclass(slots=True)
class TreeState:
    path: str
    show_hidden: bool = False
    respect_gitignore: bool = True
    search_pattern: str | None = None
    find_command: str | None = None
    search_limit: int = 50
    # Folder ids the view currently shows expanded, in display order.
    expanded: list[str] = field(default_factory=list)
    path_separator: str = os.sep

    def __post_init__(self) -> None:
        self.path = strip_trailing(self.path, self.path_separator)

    @classmethod
    def from_settings(cls, settings: AppSettings, root: str | Path | None = None) -> "TreeState":
        root_path = Path(root if root is not None else settings.paths.root_path)
        return cls(
            path=str(root_path.expanduser().resolve()),
            show_hidden=settings.filters.show_hidden,
            respect_gitignore=settings.filters.respect_gitignore,
            find_command=settings.search.command(),
            search_limit=settings.search.limit,
        )

    @property
    def filters(self) -> FilterSettings:
        return FilterSettings(show_hidden=self.show_hidden, respect_gitignore=self.respect_gitignore)
