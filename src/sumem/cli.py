"""sumem - command line entry point."""

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version

from sumem.config import SOURCE_CHOICES, get_settings
from sumem.errors import InvalidPatternError, SumemError
from sumem.matching import ignore_pids, validate_pattern
from sumem.models import MatchReport
from sumem.report import build_report, format_bytes, sort_by_memory
from sumem.source import ProcessSource, get_source

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EPILOG = """\
Examples:
  $ sumem app              # Sum memory of all processes matching "app"
  $ sumem --list app       # List and sum memory of all "app" processes
  $ sumem code -e helper   # Sum "code" processes, leaving out helpers
"""


def _pattern(value: str) -> str:
    """argparse type for search terms and exclusion patterns."""
    try:
        return validate_pattern(value)
    except InvalidPatternError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _package_version() -> str:
    try:
        return version("sumem")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the sumem command."""
    parser = argparse.ArgumentParser(
        prog="sumem",
        description="Sum the memory usage of application processes",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    parser.add_argument("search_term", type=_pattern,
            help="case-insensitive whole word to match process names and paths")
    parser.add_argument("-l", "--list", action="store_true", dest="list_processes",
            help="list all matched processes, largest first")
    parser.add_argument("-e", "--exclude", action="append", type=_pattern, default=[],
            metavar="PATTERN", dest="excludes",
            help="leave out processes matching PATTERN as a whole word (repeatable)")
    parser.add_argument("-w", "--watch", action="store_true",
            help="keep refreshing the result in a live view")
    parser.add_argument("--source", choices=SOURCE_CHOICES, default=None,
            help="how processes are listed [dflt=$SUMEM_SOURCE or psutil]")
    parser.add_argument("-v", "--verbose", action="count", default=0,
            help="log more (-v for info, -vv for debug)")
    return parser


def configure_logging(level: int) -> None:
    """Send log records to stderr at the given level."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def print_report(report: MatchReport, list_processes: bool) -> None:
    """Print a match report, optionally listing every process first."""
    if list_processes:
        print(f'Found {report.count} process(es) matching "{report.term}":\n')
        for proc in sort_by_memory(report.processes):
            print(f"  PID {proc.pid:>6} | {format_bytes(proc.memory_rss):>12} | {proc.command}")
        print()

    print(f"Total memory used by {report.count} process(es): {format_bytes(report.total_memory)}")


def execute_command(
    source: ProcessSource,
    term: str,
    excludes: list[str],
    list_processes: bool,
) -> int:
    """Take one snapshot, report the matching processes and return an exit code."""
    try:
        records = ignore_pids(source.list_processes(), (os.getpid(),))
        report = build_report(records, term, excludes)
    except SumemError as exc:
        logger.debug("snapshot failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if report.count == 0:
        print(f'No processes found matching "{term}"')
        return 0

    print_report(report, list_processes)
    return 0


def main(argv: list[str] | None = None, source: ProcessSource | None = None) -> int:
    """Entry point for the sumem command."""
    parser = build_parser()
    opts = parser.parse_args(argv)
    settings = get_settings()

    level = settings.log_level
    if opts.verbose:
        level = min(level, logging.DEBUG if opts.verbose > 1 else logging.INFO)
    configure_logging(level)

    excludes = [*settings.excludes, *opts.excludes]
    if source is None:
        source = get_source(opts.source or settings.source)
    logger.info("searching for %r with %s, excluding %s", opts.search_term,
                type(source).__name__, excludes or "nothing")

    if opts.watch:
        # Imported lazily so one-shot runs do not pay for loading Textual
        from sumem.app import SumemApp

        SumemApp(opts.search_term, source, excludes=excludes, poll_rate=settings.poll_rate).run()
        return 0

    return execute_command(source, opts.search_term, excludes, opts.list_processes)


if __name__ == "__main__":
    sys.exit(main())
