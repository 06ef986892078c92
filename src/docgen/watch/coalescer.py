"""Trailing-edge debounce over a set of dirty owner keys."""

from __future__ import annotations

import threading
from typing import Any, Callable

from docgen.core.errors import DocgenError
from docgen.core.logging import get_logger


class DebounceCoalescer:
    """Collapses bursts of ``mark_dirty`` calls into one rebuild per owner.

    Every call re-arms a single timer. When it finally fires, the dirty set
    is swapped out under the lock and each owner is rebuilt once. Flushes are
    serialized: a timer that fires while a previous flush is still running
    waits for it, so one owner is never rebuilt twice at the same time.

    Rebuilds run synchronously on the timer thread. A long rebuild delays
    the next flush for every owner, not just its own.
    """

    def __init__(
        self,
        interval: float,
        rebuild: Callable[[str], None],
        logger: Any = None,
    ):
        self.interval = interval
        self._rebuild = rebuild
        self.logger = logger or get_logger(__name__)
        self._lock = threading.Lock()
        self._pending: set[str] = set()
        self._timer: threading.Timer | None = None
        self._processing_lock = threading.Lock()

    @property
    def pending(self) -> set[str]:
        with self._lock:
            return set(self._pending)

    def mark_dirty(self, owner_key: str) -> None:
        with self._lock:
            self._pending.add(owner_key)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.interval, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> list[str]:
        """Rebuild every dirty owner now; returns the owners processed."""
        with self._lock:
            owners = sorted(self._pending)
            self._pending.clear()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if not owners:
            return []

        with self._processing_lock:
            for owner in owners:
                self.logger.info("watch.rebuilding", owner=owner)
                try:
                    self._rebuild(owner)
                except DocgenError as e:
                    self.logger.error("watch.rebuild_failed", owner=owner, **e.to_dict())
                except Exception:
                    # Timer thread: nothing above us would report it.
                    self.logger.exception("watch.rebuild_crashed", owner=owner)
                else:
                    self.logger.info("watch.rebuilt", owner=owner)
        return owners

    def cancel(self) -> None:
        """Disarm the timer and drop anything still pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()


__all__ = ["DebounceCoalescer"]
