"""Exceptions raised by sumem."""


class SumemError(Exception):
    """Base class for sumem errors."""


class ProcessEnumerationError(SumemError):
    """Listing processes failed or produced output that could not be parsed."""


class InvalidPatternError(SumemError, ValueError):
    """A search term or exclusion pattern was empty."""
