"""Process enumeration backends for sumem."""

import logging
import re
import subprocess
from typing import Protocol

import psutil

from sumem.errors import ProcessEnumerationError
from sumem.models import ProcessRecord

logger = logging.getLogger(__name__)

PS_COMMAND = ["ps", "-A", "-o", "pid,rss,command"]

_PS_LINE = re.compile(r"^(\d+)\s+(\d+)\s+(.+)$")
_NAME_SEPARATORS = re.compile(r"[\s/]+")


class ProcessSource(Protocol):
    """Anything that can take a snapshot of running processes."""

    def list_processes(self) -> list[ProcessRecord]:
        """Return one snapshot, or raise ProcessEnumerationError."""
        ...


def derive_name(command: str) -> str:
    """Short name for a command line: its last whitespace or '/' separated segment."""
    return _NAME_SEPARATORS.split(command)[-1] or command


class PsutilProcessSource:
    """
    Process source backed by psutil.

    Processes that exit, deny access or turn into zombies while the
    snapshot is taken are skipped rather than failing the snapshot.
    """

    # Attributes to fetch in a single pass
    ATTRS = ["pid", "name", "cmdline", "memory_info"]

    def list_processes(self) -> list[ProcessRecord]:
        """Collect a record for every visible process."""
        records: list[ProcessRecord] = []
        skipped = 0

        try:
            for proc in psutil.process_iter(attrs=self.ATTRS):
                try:
                    records.append(self._to_record(proc))
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    # Process died mid-poll or is off limits
                    skipped += 1
        except psutil.Error as exc:
            raise ProcessEnumerationError(f"Failed to get processes: {exc}") from exc

        logger.debug("psutil snapshot: %d process(es), %d skipped", len(records), skipped)
        return records

    @staticmethod
    def _to_record(proc: psutil.Process) -> ProcessRecord:
        with proc.oneshot():
            info = proc.info

            # Command line, falling back to the name for kernel threads
            cmdline = info.get("cmdline") or []
            command = " ".join(cmdline) if cmdline else info.get("name") or ""

            mem_info = info.get("memory_info")
            memory_rss = mem_info.rss if mem_info else 0

            return ProcessRecord(
                pid=info.get("pid", proc.pid),
                name=info.get("name") or derive_name(command),
                command=command,
                memory_rss=memory_rss,
            )


def parse_ps_output(output: str) -> list[ProcessRecord]:
    """
    Parse the output of ``ps -A -o pid,rss,command``.

    The first line is the column header. Lines that do not look like
    ``PID RSS COMMAND`` are skipped. RSS is reported in KiB.

    Raises:
        ProcessEnumerationError: If the output has no header line.
    """
    lines = output.strip().splitlines()
    if not lines:
        raise ProcessEnumerationError("Failed to get processes: ps produced no output")

    records: list[ProcessRecord] = []
    for line in lines[1:]:
        match = _PS_LINE.match(line.strip())
        if match is None:
            logger.debug("skipping unparseable ps line: %r", line)
            continue

        pid, rss, command = match.groups()
        records.append(
            ProcessRecord(
                pid=int(pid),
                name=derive_name(command),
                command=command,
                memory_rss=int(rss) * 1024,
            )
        )
    return records


class PsProcessSource:
    """Process source that shells out to ``ps``."""

    def __init__(self, command: list[str] | None = None) -> None:
        self._command = command or PS_COMMAND

    def list_processes(self) -> list[ProcessRecord]:
        """Run ps and parse its output."""
        try:
            result = subprocess.run(
                self._command,
                capture_output=True,
                text=True,
                errors="replace",
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ProcessEnumerationError(f"Failed to get processes: {exc}") from exc

        records = parse_ps_output(result.stdout)
        logger.debug("ps snapshot: %d process(es)", len(records))
        return records


SOURCES = {
    "psutil": PsutilProcessSource,
    "ps": PsProcessSource,
}


def get_source(kind: str = "psutil") -> ProcessSource:
    """Create the process source registered under ``kind``."""
    try:
        factory = SOURCES[kind]
    except KeyError:
        raise ValueError(f"unknown process source {kind!r}, expected one of {sorted(SOURCES)}") from None
    return factory()
