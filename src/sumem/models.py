"""Data models for sumem."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of one process."""

    pid: int
    name: str
    command: str
    memory_rss: int  # Bytes


@dataclass(slots=True, frozen=True)
class MatchReport:
    """Result of selecting processes from a single snapshot."""

    term: str
    excludes: tuple[str, ...]
    processes: tuple[ProcessRecord, ...]
    total_memory: int  # Bytes

    @property
    def count(self) -> int:
        """Number of matched processes."""
        return len(self.processes)
