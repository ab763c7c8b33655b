"""sumem - live watch view built on Textual."""

import os
from collections.abc import Sequence
from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Static
from textual.widgets.data_table import CellDoesNotExist, DuplicateKey, RowDoesNotExist

from sumem.errors import SumemError
from sumem.models import MatchReport, ProcessRecord
from sumem.monitor import MatchMonitor
from sumem.report import format_bytes
from sumem.source import ProcessSource

COMMAND_WIDTH = 60


class SortKey(Enum):
    """Sort keys for the process table."""

    MEM = "mem"
    PID = "pid"
    NAME = "name"


class SummaryBar(Static):
    """Header widget showing the search and the memory total."""

    DEFAULT_CSS = """
    SummaryBar {
        height: auto;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, term: str, excludes: Sequence[str] = (), **kwargs) -> None:
        """Initialize SummaryBar."""
        super().__init__(markup=False, **kwargs)
        self._term = term
        self._excludes = tuple(excludes)
        self._count: int | None = None
        self._total_memory: int = 0
        self._error: str | None = None

    @property
    def error(self) -> str | None:
        """The last snapshot error, until a report replaces it."""
        return self._error

    def on_mount(self) -> None:
        """Render the initial placeholder."""
        self.update(self.render_summary())

    def update_report(self, report: MatchReport) -> None:
        """Update the summary from a match report."""
        self._count = report.count
        self._total_memory = report.total_memory
        self._error = None
        self.update(self.render_summary())

    def show_error(self, message: str) -> None:
        """Show a failed snapshot in place of the total."""
        self._error = message
        self.update(self.render_summary())

    def render_summary(self) -> str:
        """Build the summary text."""
        search = f'Search: "{self._term}"'
        if self._excludes:
            search += "  excluding " + ", ".join(f'"{pattern}"' for pattern in self._excludes)
        if self._error is not None:
            return f"{search}\nError: {self._error}"
        if self._count is None:
            return f"{search}\nLoading processes..."
        return (
            f"{search}\n"
            f"Total memory used by {self._count} process(es): "
            f"{format_bytes(self._total_memory)}"
        )


class ProcessTable(Container):
    """Container for the matched process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()
        self._records: dict[str, ProcessRecord] = {}
        self._sort_key: SortKey = SortKey.MEM
        self._sort_reverse: bool = True  # Default: descending for MEM

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key, re-sort the rows and return it."""
        keys = list(SortKey)
        current_index = keys.index(self._sort_key)
        next_index = (current_index + 1) % len(keys)
        self._sort_key = keys[next_index]
        self._sort_reverse = self._sort_key is SortKey.MEM
        self._sort_rows(self.query_one("#process-table", DataTable))
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("RES", key="rss", width=12)
        table.add_column("NAME", key="name", width=20)
        table.add_column("COMMAND", key="command")

    def update_processes(self, processes: Sequence[ProcessRecord]) -> None:
        """
        Update the process table with new data.

        Rows are keyed by pid: existing rows are updated cell by cell, rows of
        processes that disappeared are removed, and the table is re-sorted.
        """
        table = self.query_one("#process-table", DataTable)

        new_pids = {proc.pid for proc in processes}

        for pid in self._current_pids - new_pids:
            try:
                table.remove_row(str(pid))
            except RowDoesNotExist:
                pass

        for proc in processes:
            row_key = str(proc.pid)
            if proc.pid in self._current_pids:
                self._update_row(table, row_key, proc)
            else:
                self._add_row(table, row_key, proc)

        self._current_pids = new_pids
        self._records = {str(proc.pid): proc for proc in processes}
        self._sort_rows(table)

    def _sort_value(self, pid_cell: str) -> int | str:
        proc = self._records[pid_cell]
        if self._sort_key is SortKey.MEM:
            return proc.memory_rss
        if self._sort_key is SortKey.PID:
            return proc.pid
        return proc.name.lower()

    def _sort_rows(self, table: DataTable) -> None:
        if self._records:
            table.sort("pid", key=self._sort_value, reverse=self._sort_reverse)

    def _update_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Update an existing row in place."""
        try:
            table.update_cell(row_key, "rss", format_bytes(proc.memory_rss))
            table.update_cell(row_key, "name", proc.name[:20])
            table.update_cell(row_key, "command", proc.command[:COMMAND_WIDTH])
        except CellDoesNotExist:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Add a new row to the table."""
        try:
            table.add_row(
                str(proc.pid),
                format_bytes(proc.memory_rss),
                proc.name[:20],
                proc.command[:COMMAND_WIDTH],
                key=row_key,
            )
        except DuplicateKey:
            pass


class SumemApp(App):
    """Live view of the memory used by the processes matching a search."""

    TITLE = "sumem"
    SUB_TITLE = "Process Memory Summary"

    CSS = """
    Screen {
        layout: vertical;
    }

    #summary {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(
        self,
        term: str,
        source: ProcessSource,
        excludes: Sequence[str] = (),
        poll_rate: float = 2.0,
    ) -> None:
        """Initialize the SumemApp."""
        super().__init__()
        self._term = term
        self._excludes = tuple(excludes)
        self._update_queue: Queue[MatchReport | SumemError] = Queue()
        self._monitor = MatchMonitor(
            self._update_queue,
            source,
            term,
            excludes=self._excludes,
            poll_rate=poll_rate,
            skip_pids=(os.getpid(),),
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBar(self._term, self._excludes, id="summary")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Make sure the polling thread does not outlive the app."""
        self._monitor.stop()

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent report or error."""
        latest = None
        while True:
            try:
                latest = self._update_queue.get_nowait()
            except Empty:
                break

        if isinstance(latest, SumemError):
            self._show_error(latest)
        elif latest is not None:
            self._update_ui(latest)

    def _show_error(self, exc: SumemError) -> None:
        """Surface a failed snapshot; the previous table rows stay visible."""
        try:
            summary = self.query_one("#summary", SummaryBar)
        except NoMatches:
            return  # Screen is being torn down

        message = str(exc)
        # Notify once per distinct error, not on every failed poll
        if summary.error != message:
            self.notify("Could not list processes, retrying", severity="error")
        summary.show_error(message)

    def _update_ui(self, report: MatchReport) -> None:
        """Update the UI with a new match report."""
        try:
            self.query_one("#summary", SummaryBar).update_report(report)
            self.query_one(ProcessTable).update_processes(report.processes)
        except NoMatches:
            pass  # Screen is being torn down

    def action_sort(self) -> None:
        """Cycle through sort keys."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Stop the monitor, then exit."""
        self._monitor.stop()
        self.exit()
