"""
Recursive directory watcher built from non-recursive watches.

Each directory gets its own ``Observer.schedule(..., recursive=False)`` so
that coverage is explicit: dot-directories (``.git``, ``.cache``) and their
subtrees are never watched, and every watched directory remembers the
*owner key* it was added under. When a new directory appears inside a
watched tree, coverage is extended on the spot; when one is deleted its
watches are dropped so the same path can be watched again.

This module carries no policy. It does not decide which events matter or
what to rebuild; it only turns filesystem activity into ``WatchMessage``
items on a queue for a single consumer.

Usage::

    watcher = RecursiveWatcher()
    watcher.add_recursive(Path("~/nb/workspaces/flow/docgen"), owner_key="flow")
    watcher.start()
    msg = watcher.messages.get()
    watcher.find_owner(msg.event.src_path)   # -> "flow"
"""

from __future__ import annotations

import os
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from watchdog.events import FileCreatedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from docgen.core.config import CONCEPT_MANIFEST_FILENAME, CONFIG_FILENAME
from docgen.core.errors import TransientWatchError, WatcherInitError
from docgen.core.logging import get_logger

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov"})
CAST_EXTENSIONS = frozenset({".cast"})
MARKDOWN_EXTENSIONS = frozenset({".md", ".mdx"})
RELEVANT_EXTENSIONS = MARKDOWN_EXTENSIONS | IMAGE_EXTENSIONS | VIDEO_EXTENSIONS | CAST_EXTENSIONS
CONFIG_FILENAMES = frozenset({CONFIG_FILENAME, CONCEPT_MANIFEST_FILENAME})


def is_relevant_file(path: str | Path) -> bool:
    """Content, asset, or config file whose change should trigger a rebuild."""
    path = Path(path)
    return path.suffix.lower() in RELEVANT_EXTENSIONS or path.name in CONFIG_FILENAMES


@dataclass(frozen=True)
class WatchMessage:
    """One item on the watcher queue: a filesystem event or a watcher error."""

    event: FileSystemEvent | None = None
    error: TransientWatchError | None = None


class _QueueingHandler(FileSystemEventHandler):
    """Forwards every event to the queue; never does work on the observer thread."""

    def __init__(self, messages: queue.Queue):
        super().__init__()
        self.messages = messages

    def on_any_event(self, event: FileSystemEvent) -> None:
        self.messages.put(WatchMessage(event=event))


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


class RecursiveWatcher:
    """Directory-per-watch recursive coverage over a watchdog observer."""

    def __init__(self, observer: Any = None, logger: Any = None):
        self.observer = observer if observer is not None else Observer()
        self.logger = logger or get_logger(__name__)
        self.messages: queue.Queue[WatchMessage | None] = queue.Queue()
        self._handler = _QueueingHandler(self.messages)
        self._owners: dict[Path, str] = {}
        self._watches: dict[Path, Any] = {}
        self._lock = threading.RLock()
        self._started = False

    @property
    def watched_dirs(self) -> list[Path]:
        with self._lock:
            return sorted(self._watches)

    def start(self) -> None:
        try:
            self.observer.start()
        except OSError as e:
            raise WatcherInitError(f"failed to start filesystem observer: {e}", cause=e)
        self._started = True

    @property
    def alive(self) -> bool:
        """False once a started observer has stopped (closed or crashed)."""
        return not self._started or self.observer.is_alive()

    def add_recursive(self, root: Path, owner_key: str) -> int:
        """Watch ``root`` and every non-dot directory below it.

        Returns the number of directories newly watched. Directories that
        cannot be watched are logged and skipped.
        """
        root = Path(root).resolve()
        added = 0
        for dirpath, dirnames, _ in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            if self._watch(Path(dirpath), owner_key):
                added += 1
        return added

    def _watch(self, directory: Path, owner_key: str) -> bool:
        with self._lock:
            self._owners[directory] = owner_key
            if directory in self._watches:
                return False
            try:
                self._watches[directory] = self.observer.schedule(
                    self._handler, str(directory), recursive=False
                )
            except OSError as e:
                self.logger.warning("watcher.schedule_failed", path=str(directory), error=str(e))
                return False
        self.logger.debug("watcher.watching", path=str(directory), owner=owner_key)
        return True

    def handle_new_directory(self, path: str | Path) -> bool:
        """Extend coverage to a directory created inside a watched tree.

        Files that already exist in the new tree (written before the watch
        was in place) are reported as created so they are not missed.
        """
        path = Path(path).resolve()
        if _is_hidden(path) or not path.is_dir():
            return False
        owner = self.find_owner(path.parent)
        if owner is None:
            return False

        try:
            self.add_recursive(path, owner)
            for dirpath, dirnames, filenames in os.walk(path):
                dirnames[:] = [d for d in dirnames if not d.startswith(".")]
                for filename in filenames:
                    self.messages.put(WatchMessage(event=FileCreatedEvent(os.path.join(dirpath, filename))))
        except OSError as e:
            self.messages.put(
                WatchMessage(
                    error=TransientWatchError(f"failed to extend watch to {path}: {e}", cause=e).with_context(
                        path=str(path)
                    )
                )
            )
            return False
        self.logger.debug("watcher.extended", path=str(path), owner=owner)
        return True

    def handle_removed_directory(self, path: str | Path) -> int:
        """Drop the watches for a deleted or moved-away directory and its subtree.

        The observer keeps a dead emitter for a deleted directory, so a
        directory recreated at the same path is only seen once the old watch
        is unscheduled. Returns the number of watches dropped.
        """
        path = Path(path).resolve()
        with self._lock:
            stale = [d for d in self._watches if d == path or path in d.parents]
            for directory in stale:
                watch = self._watches.pop(directory)
                self._owners.pop(directory, None)
                try:
                    self.observer.unschedule(watch)
                except (KeyError, OSError) as e:
                    self.logger.debug("watcher.unschedule_failed", path=str(directory), error=str(e))
        if stale:
            self.logger.debug("watcher.removed", path=str(path), directories=len(stale))
        return len(stale)

    def find_owner(self, path: str | Path) -> str | None:
        """Owner key of the nearest watched directory at or above ``path``."""
        path = Path(path).resolve()
        with self._lock:
            for candidate in (path, *path.parents):
                owner = self._owners.get(candidate)
                if owner is not None:
                    return owner
        return None

    def close(self) -> None:
        """Stop the observer and wake any consumer blocked on ``messages``."""
        try:
            if self.observer.is_alive():
                self.observer.stop()
                self.observer.join(timeout=5)
        finally:
            self.messages.put(None)


__all__ = [
    "RELEVANT_EXTENSIONS",
    "WatchMessage",
    "RecursiveWatcher",
    "is_relevant_file",
]
