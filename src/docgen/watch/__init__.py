"""Live incremental rebuilds driven by filesystem events."""

from docgen.watch.coalescer import DebounceCoalescer
from docgen.watch.engine import WatchEngine
from docgen.watch.rebuilder import IncrementalRebuilder, WatchedUnit
from docgen.watch.watcher import RecursiveWatcher, WatchMessage

__all__ = [
    "DebounceCoalescer",
    "WatchEngine",
    "IncrementalRebuilder",
    "WatchedUnit",
    "RecursiveWatcher",
    "WatchMessage",
]
