"""Corpus change tracking: turns file events into the cache's stale flag."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..utils import is_excluded_path, matches_extension

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..cache import CacheState

logger = logging.getLogger(__name__)

DEFAULT_WATCH_EXTENSIONS: tuple[str, ...] = (".tree",)
OBSERVER_JOIN_TIMEOUT = 5.0


class InvalidationTracker:
    """Marks the cache stale whenever a corpus document is created, changed or deleted.

    Every relevant event sets the flag; events are not counted, diffed or
    debounced. The next request then starts a rebuild.
    """

    def __init__(
        self,
        state: "CacheState",
        extensions: Sequence[str] = DEFAULT_WATCH_EXTENSIONS,
        exclude_spec=None,
        *,
        root: Path | None = None,
    ) -> None:
        self._state = state
        self.extensions = tuple(extensions)
        self.exclude_spec = exclude_spec
        self.root = root

    def handles(self, path: Path | str) -> bool:
        if not matches_extension(path, self.extensions):
            return False
        return not is_excluded_path(self.exclude_spec, path, self.root)

    def notify(self, path: Path | str) -> bool:
        """Invalidate for *path*; return True when the event was relevant."""
        if not self.handles(path):
            return False
        logger.debug("Corpus changed: %s", path)
        self._state.stale = True
        return True

    def notify_created(self, path: Path | str) -> bool:
        return self.notify(path)

    def notify_changed(self, path: Path | str) -> bool:
        return self.notify(path)

    def notify_deleted(self, path: Path | str) -> bool:
        return self.notify(path)

    def mark_stale(self) -> None:
        self._state.stale = True


class ForestEventHandler(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread onto the event loop."""

    def __init__(
        self,
        tracker: InvalidationTracker,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__()
        self.tracker = tracker
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(self.tracker.notify_created, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(self.tracker.notify_changed, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._dispatch(self.tracker.notify_deleted, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._dispatch(self.tracker.notify_deleted, event.src_path)
        dest = getattr(event, "dest_path", None)
        if dest:
            self._dispatch(self.tracker.notify_created, dest)

    def _dispatch(self, callback, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        loop = self.loop
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(callback, path)
        else:
            callback(path)


class ForestWatcher:
    """Runs a watchdog observer over the workspace root."""

    def __init__(
        self,
        root: Path,
        tracker: InvalidationTracker,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.root = Path(root)
        self.handler = ForestEventHandler(tracker, loop)
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for corpus changes", self.root)

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=OBSERVER_JOIN_TIMEOUT)
        logger.debug("Stopped watching %s", self.root)
