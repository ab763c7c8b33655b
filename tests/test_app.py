"""Tests for the sumem watch view."""

import pytest

from conftest import FakeSource
from sumem.app import ProcessTable, SortKey, SumemApp, SummaryBar
from sumem.models import MatchReport, ProcessRecord


def make_records() -> list[ProcessRecord]:
    return [
        ProcessRecord(pid=100, name="code", command="/usr/bin/code", memory_rss=1024000),
        ProcessRecord(pid=200, name="Code Helper", command="/usr/lib/code/Code Helper", memory_rss=4096000),
        ProcessRecord(pid=300, name="anvil", command="/usr/lib/code/anvil --code", memory_rss=2048000),
    ]


def row_order(process_table: ProcessTable) -> list[str]:
    """PIDs of the table rows, top to bottom."""
    table = process_table.query_one("#process-table")
    return [table.get_row_at(index)[0] for index in range(table.row_count)]


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        """Test SortKey enum has expected values."""
        assert SortKey.MEM.value == "mem"
        assert SortKey.PID.value == "pid"
        assert SortKey.NAME.value == "name"

    def test_sort_key_members(self):
        """Test SortKey enum has all expected members, MEM first."""
        assert list(SortKey) == [SortKey.MEM, SortKey.PID, SortKey.NAME]


@pytest.mark.asyncio
async def test_app_creation():
    """Test SumemApp can be instantiated."""
    app = SumemApp("code", FakeSource(make_records()))
    assert app.title == "sumem"
    assert app.sub_title == "Process Memory Summary"
    assert app._monitor is not None
    assert not app._monitor.is_running


@pytest.mark.asyncio
async def test_app_compose():
    """Test SumemApp composes correctly."""
    app = SumemApp("code", FakeSource(make_records()))
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#summary") is not None
        assert pilot.app.query_one("#process-table") is not None


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' stops the monitor and exits."""
    app = SumemApp("code", FakeSource(make_records()), poll_rate=0.1)
    async with app.run_test() as pilot:
        assert app._monitor.is_running
        await pilot.press("q")
        assert not app._monitor.is_running
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_app_receives_reports_from_monitor():
    """Test the table and summary fill in from monitor reports."""
    app = SumemApp("code", FakeSource(make_records()), excludes=["anvil"], poll_rate=0.1)
    async with app.run_test() as pilot:
        await pilot.pause(1.5)

        process_table = pilot.app.query_one(ProcessTable)
        assert process_table._current_pids == {100, 200}
        assert row_order(process_table) == ["200", "100"]

        summary = pilot.app.query_one("#summary", SummaryBar)
        assert "Total memory used by 2 process(es): 4.88 MB" in summary.render_summary()


@pytest.mark.asyncio
async def test_app_sort_binding():
    """Test that F6 cycles the sort key."""
    app = SumemApp("code", FakeSource(make_records()))
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        initial_sort = process_table.sort_key

        await pilot.press("f6")

        assert process_table.sort_key != initial_sort


@pytest.mark.asyncio
async def test_process_table_cycle_sort():
    """Test ProcessTable sort key cycling re-orders the rows."""
    app = SumemApp("code", FakeSource([]))
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_processes(make_records())

        # Default is memory, largest first
        assert process_table.sort_key == SortKey.MEM
        assert row_order(process_table) == ["200", "300", "100"]

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.PID
        assert row_order(process_table) == ["100", "200", "300"]

        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.NAME
        assert row_order(process_table) == ["300", "100", "200"]

        # Should wrap back to MEM
        process_table.cycle_sort()
        assert process_table.sort_key == SortKey.MEM
        assert row_order(process_table) == ["200", "300", "100"]


@pytest.mark.asyncio
async def test_process_table_updates_in_place():
    """Test rows are updated, added and removed by pid."""
    app = SumemApp("code", FakeSource([]))
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        process_table.update_processes(make_records())

        process_table.update_processes([
            ProcessRecord(pid=200, name="Code Helper", command="/usr/lib/code/Code Helper", memory_rss=512),
            ProcessRecord(pid=400, name="code", command="/usr/bin/code --new-window", memory_rss=8192000),
        ])

        assert process_table._current_pids == {200, 400}
        assert row_order(process_table) == ["400", "200"]

        table = process_table.query_one("#process-table")
        assert table.get_row("200")[1] == "512.00 B"


@pytest.mark.asyncio
async def test_summary_bar_update():
    """Test the summary reflects the latest report."""
    app = SumemApp("code", FakeSource([]), excludes=["gpu"])
    async with app.run_test() as pilot:
        summary = pilot.app.query_one("#summary", SummaryBar)
        summary.update_report(
            MatchReport(term="code", excludes=("gpu",), processes=(), total_memory=1536)
        )

        text = summary.render_summary()
        assert 'Search: "code"  excluding "gpu"' in text
        assert "Total memory used by 0 process(es): 1.50 KB" in text


def test_summary_before_first_report():
    """Test the summary shows a placeholder until a report arrives."""
    summary = SummaryBar("code")

    assert summary.render_summary() == 'Search: "code"\nLoading processes...'


@pytest.mark.asyncio
async def test_app_shows_snapshot_errors():
    """Test a failing source is shown in the summary instead of the loading text."""
    app = SumemApp("code", FakeSource(error="ps exploded"), poll_rate=0.1)
    async with app.run_test() as pilot:
        await pilot.pause(1.5)

        summary = pilot.app.query_one("#summary", SummaryBar)
        assert summary.error == "ps exploded"
        assert summary.render_summary() == 'Search: "code"\nError: ps exploded'
        assert pilot.app.query_one(ProcessTable)._current_pids == set()


@pytest.mark.asyncio
async def test_summary_error_cleared_by_report():
    """Test a report after a failed snapshot replaces the error."""
    app = SumemApp("code", FakeSource([]))
    async with app.run_test() as pilot:
        summary = pilot.app.query_one("#summary", SummaryBar)
        summary.show_error("Failed to get processes: ps not found")

        assert "Error: Failed to get processes: ps not found" in summary.render_summary()

        summary.update_report(MatchReport(term="code", excludes=(), processes=(), total_memory=0))

        assert summary.error is None
        assert summary.render_summary() == 'Search: "code"\nTotal memory used by 0 process(es): 0.00 B'
