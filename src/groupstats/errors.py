"""Exception types raised by groupstats."""

from __future__ import annotations

from typing import Iterable


class GroupStatsError(Exception):
    """Base class for groupstats errors."""


class ColumnNotFoundError(GroupStatsError, ValueError):
    """Raised when one or more requested columns are absent from a table."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = list(missing)


class FormulaError(GroupStatsError, ValueError):
    """Raised when a ``response ~ treatment`` formula cannot be parsed."""


class EmptyResultError(GroupStatsError, ValueError):
    """Raised when the grouped ANOVA stage produces no groups at all."""
