"""
Watch engine: discovery, watch setup, and the single dispatcher loop.

Manifesto:
    One thread consumes watcher messages and decides what they mean; one
    timer thread rebuilds. The observer threads only enqueue. Nothing a
    single package does (bad YAML, a missing file, a crashing rebuild) can
    stop the loop; only Ctrl-C or ``stop()`` does.

Architecture:
    ::

        watchdog observer threads
              │  WatchMessage(event | error)
              ▼
        messages queue ──► run() dispatcher loop
                              ├── dir created/moved in ──► RecursiveWatcher.handle_new_directory
                              ├── dir deleted/moved out ► RecursiveWatcher.handle_removed_directory
                              ├── relevant file changed ──► find_owner ──► DebounceCoalescer.mark_dirty
                              └── error               ──► log, continue
                                                              │ (timer thread, after quiet interval)
                                                              ▼
                                                  IncrementalRebuilder.rebuild(owner)

Tags:
    docgen, watch, dispatcher, debounce, watchdog
"""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
)

from docgen.aggregation.aggregator import allow_list
from docgen.aggregation.writer import AstroWriter
from docgen.core.errors import ConfigLoadError, TransientWatchError, WatcherInitError
from docgen.core.logging import get_logger
from docgen.core.status import BuildMode
from docgen.workspace.discovery import DiscoveryService
from docgen.workspace.locator import ContentRootKind, SourceLocator

from .coalescer import DebounceCoalescer
from .rebuilder import IncrementalRebuilder, WatchedUnit
from .watcher import RecursiveWatcher, WatchMessage, is_relevant_file

_CONTENT_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
_POLL_SECONDS = 0.2


def _event_path(event: FileSystemEvent) -> str:
    if event.event_type == EVENT_TYPE_MOVED and getattr(event, "dest_path", ""):
        return str(event.dest_path)
    return str(event.src_path)


class WatchEngine:
    """Watches every discovered package and rebuilds the ones that change."""

    def __init__(
        self,
        website_dir: Path,
        mode: BuildMode | str,
        locator: SourceLocator,
        discovery: DiscoveryService,
        *,
        debounce_ms: int = 100,
        logger: Any = None,
        watcher: RecursiveWatcher | None = None,
        cwd: Path | None = None,
        **builder_options: Any,
    ):
        self.mode = BuildMode.parse(mode)
        self.locator = locator
        self.discovery = discovery
        self.logger = logger or get_logger(__name__)
        self.cwd = Path(cwd) if cwd else None
        self.writer = AstroWriter(website_dir)
        self.watcher = watcher or RecursiveWatcher(logger=self.logger)
        self.units: dict[str, WatchedUnit] = {}
        self.rebuilder = IncrementalRebuilder(
            self.writer, locator, self.mode, self.units, logger=self.logger, **builder_options
        )
        self.coalescer = DebounceCoalescer(debounce_ms / 1000.0, self.rebuilder.rebuild, logger=self.logger)
        self._stop = threading.Event()
        self._ready = False

    # =========================================================================
    # Setup
    # =========================================================================

    def setup(self) -> dict[str, WatchedUnit]:
        """Discover packages and start watching them.

        Raises:
            DiscoveryError: The enclosing ecosystem could not be located.
            WatcherInitError: Nothing to watch, or the observer failed to start.
        """
        local_config = self.locator.locate_cwd_config(self.cwd)
        names = local_config.settings.ecosystems if local_config else []
        allowed = allow_list(local_config)

        for ecosystem in self.discovery.resolve(names, cwd=self.cwd).ecosystems:
            for workspace in self.discovery.expand_workspaces(ecosystem):
                root = self.locator.resolve(workspace.path, workspace.name)
                if not root.has_config or not root.base_path.is_dir():
                    continue
                try:
                    config = root.load_config()
                except ConfigLoadError as e:
                    self.logger.warning("watch.config_invalid", **e.with_context(package=workspace.name).to_dict())
                    continue
                if not config.enabled:
                    continue
                if allowed and workspace.name not in allowed and not config.is_sections_mode:
                    continue

                owner_key = str(root.base_path.resolve())
                self.watcher.add_recursive(root.base_path, owner_key)
                authoring = self.locator.authoring_dir(workspace.name)
                if root.kind is ContentRootKind.LEGACY and authoring is not None and authoring.parent.is_dir():
                    # An authoring config created later takes over; watch for it.
                    self.watcher.add_recursive(authoring.parent, owner_key)
                concepts = self.locator.concepts_dir(workspace.name)
                if concepts is not None and concepts.is_dir() and not config.is_sections_mode:
                    self.watcher.add_recursive(concepts, owner_key)

                self.units[owner_key] = WatchedUnit(
                    owner_key=owner_key,
                    package_name=workspace.name,
                    workspace_path=workspace.path,
                    ecosystem=ecosystem.name,
                    config=config,
                )
                self.logger.info("watch.watching", package=workspace.name, dir=str(root.base_path), kind=root.kind.value)

        if not self.units:
            raise WatcherInitError("no packages found to watch")

        self.watcher.start()
        self._ready = True
        self.logger.info(
            "watch.started",
            mode=self.mode.value,
            website=str(self.writer.root),
            packages=len(self.units),
            directories=len(self.watcher.watched_dirs),
        )
        return self.units

    # =========================================================================
    # Dispatcher loop
    # =========================================================================

    def run(self) -> None:
        """Dispatch watcher messages until ``stop()`` or Ctrl-C."""
        if not self._ready:
            self.setup()
        try:
            while not self._stop.is_set():
                try:
                    message = self.watcher.messages.get(timeout=_POLL_SECONDS)
                except queue.Empty:
                    if not self.watcher.alive:
                        self.logger.error("watch.observer_stopped")
                        break
                    continue
                if message is None:
                    break
                self.dispatch(message)
        except KeyboardInterrupt:
            self.logger.info("watch.interrupted")
        finally:
            self.coalescer.cancel()
            self.watcher.close()
            self.logger.info("watch.stopped")

    def dispatch(self, message: WatchMessage) -> None:
        if message.error is not None:
            self.logger.error("watch.watcher_error", **message.error.to_dict())
            return
        if message.event is None:
            return
        try:
            self.handle_event(message.event)
        except OSError as e:
            error = TransientWatchError(f"failed to handle event: {e}", cause=e).with_context(
                path=str(message.event.src_path)
            )
            self.logger.error("watch.watcher_error", **error.to_dict())

    def handle_event(self, event: FileSystemEvent) -> str | None:
        """Route one filesystem event; returns the owner marked dirty, if any."""
        if event.event_type == EVENT_TYPE_DELETED:
            self.watcher.handle_removed_directory(event.src_path)
            return None
        if event.event_type not in _CONTENT_EVENTS:
            return None

        path = _event_path(event)
        if event.is_directory:
            if event.event_type == EVENT_TYPE_MOVED:
                self.watcher.handle_removed_directory(event.src_path)
            if event.event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_MOVED):
                self.watcher.handle_new_directory(path)
            return None

        if not is_relevant_file(path):
            return None

        owner = self.watcher.find_owner(path)
        if owner is None or owner not in self.units:
            return None

        self.logger.debug("watch.change", path=path, owner=owner, event=event.event_type)
        self.coalescer.mark_dirty(owner)
        return owner

    def stop(self) -> None:
        self._stop.set()
        self.watcher.messages.put(None)


__all__ = ["WatchEngine"]
