"""Whole-word process matching for sumem."""

import logging
import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from sumem.errors import InvalidPatternError
from sumem.models import ProcessRecord

logger = logging.getLogger(__name__)


@lru_cache(maxsize=128)
def _whole_word_pattern(term: str) -> re.Pattern[str]:
    """Compile a literal, case-insensitive pattern bounded by non-alphanumerics."""
    # Only the term itself is case-folded; the boundary class stays ASCII-exact.
    return re.compile(rf"(?<![A-Za-z0-9])(?i:{re.escape(term)})(?![A-Za-z0-9])")


def validate_pattern(term: str) -> str:
    """Return ``term`` unchanged, or raise InvalidPatternError if it is empty."""
    if not term:
        raise InvalidPatternError("search term and exclusion patterns must not be empty")
    return term


def matches_whole_word(text: str, term: str) -> bool:
    """
    Check whether ``term`` occurs in ``text`` as a whole word, ignoring case.

    A word boundary is the start or end of ``text`` or any character outside
    ``[A-Za-z0-9]``, so ``/usr/bin/code`` and ``test_code_helper`` match
    ``code`` while ``encoder`` does not.
    """
    return _whole_word_pattern(term).search(text) is not None


def record_matches(record: ProcessRecord, term: str) -> bool:
    """Check the term against the process name, then its full command line."""
    return matches_whole_word(record.name, term) or matches_whole_word(record.command, term)


def filter_processes(records: Iterable[ProcessRecord], term: str) -> list[ProcessRecord]:
    """Keep records whose name or command matches ``term``, in snapshot order."""
    return [record for record in records if record_matches(record, term)]


def exclude_processes(
    records: Iterable[ProcessRecord],
    patterns: Sequence[str],
) -> list[ProcessRecord]:
    """Drop records matched by any of ``patterns``. No patterns keeps everything."""
    if not patterns:
        return list(records)
    return [
        record
        for record in records
        if not any(record_matches(record, pattern) for pattern in patterns)
    ]


def select_processes(
    records: Iterable[ProcessRecord],
    term: str,
    excludes: Sequence[str] = (),
) -> list[ProcessRecord]:
    """
    Select the records matching ``term`` and none of ``excludes``.

    Raises:
        InvalidPatternError: If the term or any exclusion pattern is empty.
    """
    validate_pattern(term)
    for pattern in excludes:
        validate_pattern(pattern)

    included = filter_processes(records, term)
    selected = exclude_processes(included, excludes)
    logger.debug(
        "term %r matched %d process(es), %d left after %d exclusion pattern(s)",
        term,
        len(included),
        len(selected),
        len(excludes),
    )
    return selected


def ignore_pids(records: Iterable[ProcessRecord], pids: Iterable[int]) -> list[ProcessRecord]:
    """Return all records except those whose pid is in ``pids``."""
    excluded = frozenset(pids)
    if not excluded:
        return list(records)
    return [record for record in records if record.pid not in excluded]
