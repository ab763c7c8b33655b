"""Memory aggregation and formatting for sumem."""

from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from sumem.matching import select_processes
from sumem.models import MatchReport, ProcessRecord

UNITS = ("B", "KB", "MB", "GB", "TB")


def calculate_total_memory(records: Iterable[ProcessRecord]) -> int:
    """Sum resident memory across records, in bytes."""
    return sum(record.memory_rss for record in records)


def format_bytes(value: int | float) -> str:
    """Format bytes as a two-decimal string using binary units up to TB."""
    size = value
    unit_index = 0
    while size >= 1024 and unit_index < len(UNITS) - 1:
        size /= 1024
        unit_index += 1
    # Ties round away from zero: 1.125 KB renders as "1.13 KB"
    rounded = Decimal(size).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{rounded:.2f} {UNITS[unit_index]}"


def sort_by_memory(records: Iterable[ProcessRecord]) -> list[ProcessRecord]:
    """Sort records by resident memory, largest first. Ties keep their order."""
    return sorted(records, key=lambda record: record.memory_rss, reverse=True)


def build_report(
    records: Iterable[ProcessRecord],
    term: str,
    excludes: Sequence[str] = (),
) -> MatchReport:
    """Select matching records from a snapshot and total their memory."""
    selected = select_processes(records, term, excludes)
    return MatchReport(
        term=term,
        excludes=tuple(excludes),
        processes=tuple(selected),
        total_memory=calculate_total_memory(selected),
    )
