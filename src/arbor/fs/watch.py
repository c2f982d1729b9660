"""Per-folder watchdog observers with update coalescing."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from arbor.runtime_logging import get_runtime_logger

FolderCallback = Callable[[Path], None]


class _DebouncedHandler(FileSystemEventHandler):
    def __init__(
        self,
        callback: FolderCallback,
        *,
        path: Path,
        debounce_s: float = 0.25,
    ) -> None:
        super().__init__()
        self.callback = callback
        self.path = path
        self.debounce_s = debounce_s
        self._lock = threading.Lock()
        self._last_event_at = 0.0
        self._timer: threading.Timer | None = None
        self._logger = get_runtime_logger()

    def on_any_event(self, event) -> None:  # type: ignore[override]
        # Opening a file for reading is not a change to the listing.
        if getattr(event, "event_type", "") in {"opened", "closed_no_write"}:
            return
        with self._lock:
            self._last_event_at = time.monotonic()
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_s, self._fire_if_stable)
            self._timer.daemon = True
            self._timer.start()
        self._logger.debug(
            "watch.event",
            path=str(self.path),
            event_type=getattr(event, "event_type", "unknown"),
            src_path=str(getattr(event, "src_path", "")),
        )

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire_if_stable(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_event_at
            if elapsed < self.debounce_s:
                return
        try:
            self.callback(self.path)
            self._logger.debug("watch.callback.fired", path=str(self.path))
        except Exception as exc:
            self._logger.error("watch.callback.failed", path=str(self.path), error=str(exc))


class WatchManager:
    """Watches loaded folders one level deep and reports which folder changed."""

    def __init__(self, debounce_s: float = 0.25) -> None:
        self.debounce_s = debounce_s
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()
        self._handlers: dict[Path, _DebouncedHandler] = {}
        self._watches: dict[Path, Any] = {}
        self._logger = get_runtime_logger()
        self._logger.info("watch.manager.started", debounce_s=debounce_s)

    def watched(self) -> set[Path]:
        return set(self._handlers)

    def watch(self, path: Path, callback: FolderCallback) -> None:
        key = path.resolve()
        if key in self._handlers:
            return
        handler = _DebouncedHandler(callback, path=key, debounce_s=self.debounce_s)
        try:
            self._watches[key] = self._observer.schedule(handler, str(key), recursive=False)
        except OSError as exc:
            self._logger.warning("watch.manager.watch_failed", path=str(key), error=str(exc))
            return
        self._handlers[key] = handler
        self._logger.debug("watch.manager.watch", path=str(key))

    def unwatch(self, path: Path) -> None:
        key = path.resolve()
        handler = self._handlers.pop(key, None)
        if handler is not None:
            handler.cancel()
        watch = self._watches.pop(key, None)
        if watch is not None:
            try:
                self._observer.unschedule(watch)
            except (KeyError, ValueError) as exc:
                self._logger.debug("watch.manager.unschedule_failed", path=str(key), error=str(exc))
        self._logger.debug("watch.manager.unwatch", path=str(key))

    def sync(self, paths: Iterable[Path], callback: FolderCallback) -> None:
        """Watch exactly ``paths``, dropping folders that are no longer wanted."""
        wanted = {path.resolve() for path in paths}
        for stale in self.watched() - wanted:
            self.unwatch(stale)
        for path in sorted(wanted):
            self.watch(path, callback)

    def close(self) -> None:
        for handler in self._handlers.values():
            handler.cancel()
        self._observer.stop()
        self._observer.join(timeout=2)
        self._handlers.clear()
        self._watches.clear()
        self._logger.info("watch.manager.closed")


class NullWatchManager:
    """No-op watcher for tests and restricted environments."""

    def watched(self) -> set[Path]:
        return set()

    def watch(self, path: Path, callback: FolderCallback) -> None:  # noqa: ARG002
        return

    def unwatch(self, path: Path) -> None:  # noqa: ARG002
        return

    def sync(self, paths: Iterable[Path], callback: FolderCallback) -> None:  # noqa: ARG002
        return

    def close(self) -> None:
        return
