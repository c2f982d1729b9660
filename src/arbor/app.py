"""arbor Textual application shell."""

from __future__ import annotations

from pathlib import Path

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Input

from arbor.config.store import SettingsStore
from arbor.fs.scanner import Scanner, scan_dir
from arbor.fs.search import Searcher, find_files
from arbor.fs.watch import NullWatchManager, WatchManager
from arbor.messages import TreeUpdated
from arbor.runtime_logging import configure_runtime_logging
from arbor.tree.pathutil import display_path
from arbor.tree.state import TreeState
from arbor.widgets.project_tree import ProjectTreePanel


class ArborApp(App[None]):
    TITLE = "arbor"

    BINDINGS = [
        ("ctrl+r", "refresh_tree", "Refresh"),
        ("slash", "focus_search", "Search"),
        ("escape", "clear_search", "Clear search"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }

    #search {
        dock: top;
    }
    """

    def __init__(
        self,
        *,
        root: Path,
        reveal_path: str | None = None,
        settings_store: SettingsStore | None = None,
        enable_watchers: bool | None = None,
        watch_manager: WatchManager | NullWatchManager | None = None,
        scanner: Scanner = scan_dir,
        searcher: Searcher = find_files,
        log_level: str | None = None,
        log_file: str | Path | None = None,
    ) -> None:
        self.logger = configure_runtime_logging(level=log_level, log_file=log_file)
        self.settings_store = settings_store or SettingsStore()
        self.settings = self.settings_store.load()
        self.state = TreeState.from_settings(self.settings, root)
        self.reveal_path = reveal_path
        self.scanner = scanner
        self.searcher = searcher
        self._watcher_startup_error: str | None = None

        if enable_watchers is None:
            enable_watchers = self.settings.watch.enabled
        if watch_manager is not None:
            self.watch_manager = watch_manager
        elif enable_watchers:
            try:
                self.watch_manager = WatchManager(debounce_s=self.settings.watch.debounce_s)
            except OSError as exc:
                self._watcher_startup_error = str(exc)
                self.logger.warning("app.watch_manager.unavailable", error=str(exc))
                self.watch_manager = NullWatchManager()
        else:
            self.watch_manager = NullWatchManager()

        self.logger.info(
            "app.initialized",
            root=self.state.path,
            reveal=reveal_path,
            enable_watchers=enable_watchers,
        )
        super().__init__()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Search files (enter to apply, esc to clear)", id="search")
        yield ProjectTreePanel(
            self.state,
            self.watch_manager,
            reveal_path=self.reveal_path,
            scanner=self.scanner,
            searcher=self.searcher,
        )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = display_path(self.state.path)
        if self._watcher_startup_error:
            self.notify(
                f"File watching disabled: {self._watcher_startup_error}",
                severity="warning",
            )

    def on_unmount(self) -> None:
        self.watch_manager.close()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search":
            return
        self.query_one(ProjectTreePanel).search(event.value)

    def on_tree_updated(self, message: TreeUpdated) -> None:
        if not message.update.full:
            return
        root = display_path(self.state.path)
        if self.state.search_pattern:
            self.sub_title = f"{root}  search: {self.state.search_pattern}"
        else:
            self.sub_title = root

    def action_refresh_tree(self) -> None:
        self.query_one(ProjectTreePanel).refresh_tree()

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_clear_search(self) -> None:
        search = self.query_one("#search", Input)
        search.value = ""
        self.query_one(ProjectTreePanel).search(None)
        self.query_one("#tree").focus()
