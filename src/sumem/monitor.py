"""Background polling engine for the sumem watch view."""

import logging
import threading
from collections.abc import Sequence
from queue import Queue

from sumem.errors import SumemError
from sumem.matching import ignore_pids
from sumem.models import MatchReport
from sumem.report import build_report
from sumem.source import ProcessSource

logger = logging.getLogger(__name__)


class MatchMonitor:
    """
    Re-runs a search against fresh process snapshots.

    Runs in a separate daemon thread and pushes a MatchReport per poll to a
    thread-safe Queue. A failed snapshot is logged, its error is queued in
    place of a report so the view can show it, and the next poll tries again.
    """

    def __init__(
        self,
        update_queue: Queue[MatchReport | SumemError],
        source: ProcessSource,
        term: str,
        excludes: Sequence[str] = (),
        poll_rate: float = 2.0,
        skip_pids: Sequence[int] = (),
    ) -> None:
        """
        Initialize the MatchMonitor.

        Args:
            update_queue: Thread-safe queue to push reports and errors to.
            source: Where process snapshots come from.
            term: Whole word to search for.
            excludes: Patterns whose matches are dropped from the report.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
            skip_pids: Processes left out of every snapshot.
        """
        self._queue = update_queue
        self._source = source
        self._term = term
        self._excludes = tuple(excludes)
        self._skip_pids = frozenset(skip_pids)
        self._poll_rate = poll_rate
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="MatchMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_report())
            except SumemError as exc:
                logger.warning("snapshot failed, retrying in %.1fs: %s", self._poll_rate, exc)
                self._queue.put(exc)

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)

    def collect_report(self) -> MatchReport:
        """Take one snapshot and select the matching processes from it."""
        records = ignore_pids(self._source.list_processes(), self._skip_pids)
        return build_report(records, self._term, self._excludes)
