"""Watch mode: run a sync pass whenever the CSV file changes.

The watcher polls the file's ``(mtime, size)`` signature.  A change opens
a debounce window; the pass runs once the file has been quiet for
``debounce`` seconds.  The signature is re-read after each pass so the
engine's own write does not trigger another one.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from .sync.engine import SyncEngine
from .sync.errors import PassInProgressError, SyncError
from .sync.models import SyncResult
from .sync.reporter import format_sync_report

logger = logging.getLogger(__name__)

Signature = tuple[float, int] | None


def file_signature(path: Path) -> Signature:
    """Return ``(mtime, size)`` of *path*, or ``None`` if it is missing."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_mtime, st.st_size)


class CsvWatcher:
    """Poll a CSV file and run ``engine`` after each settled change.

    Args:
        engine: Engine whose store is *path*.
        path: File to watch.
        debounce: Quiet period in seconds before a pass starts.
        poll_interval: Seconds between two signature checks.
        clock: Monotonic clock (injectable for tests).
        on_result: Called with each completed ``SyncResult``.
    """

    def __init__(
        self,
        engine: SyncEngine,
        path: Path,
        debounce: float = 1.0,
        poll_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        on_result: Callable[[SyncResult], None] | None = None,
    ) -> None:
        self.engine = engine
        self.path = Path(path)
        self.debounce = debounce
        self.poll_interval = poll_interval
        self._clock = clock
        self._on_result = on_result
        self._signature = file_signature(self.path)
        self._pending_since: float | None = None
        self.passes = 0

    @property
    def pending(self) -> bool:
        return self._pending_since is not None

    def poll_once(self) -> SyncResult | None:
        """Check the file once and run a pass if a change has settled.

        Returns:
            The pass result, or ``None`` when no pass completed.
        """
        current = file_signature(self.path)
        now = self._clock()

        if current != self._signature:
            if self._pending_since is None:
                logger.info(
                    "%s changed, syncing in %.1fs...", self.path, self.debounce
                )
            self._signature = current
            self._pending_since = now
            return None

        if self._pending_since is None:
            return None
        if now - self._pending_since < self.debounce:
            return None

        self._pending_since = None
        return self._run_pass()

    def _run_pass(self) -> SyncResult | None:
        try:
            result = self.engine.run()
        except PassInProgressError:
            logger.info("A sync pass is already running, change ignored")
            return None
        except SyncError as exc:
            logger.error("Sync failed: %s", exc)
            return None
        finally:
            self._signature = file_signature(self.path)

        self.passes += 1
        logger.info(format_sync_report(result, store=str(self.path)))
        if self._on_result is not None:
            self._on_result(result)
        return result

    def run(self, stop_event: threading.Event) -> None:
        """Poll until *stop_event* is set."""
        logger.info("Watching %s for changes...", self.path)
        while not stop_event.is_set():
            self.poll_once()
            stop_event.wait(self.poll_interval)
        logger.info("Stopped watching %s", self.path)
