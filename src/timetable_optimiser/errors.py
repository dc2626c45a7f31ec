"""Exception hierarchy for the optimisation core."""

from __future__ import annotations


class TimetableOptimiserError(Exception):
    """Base class for all errors raised by the optimiser."""


class DataUnavailableError(TimetableOptimiserError, LookupError):
    """A service, stop or date has no usable data in the provider."""


class NoMoveFoundError(TimetableOptimiserError):
    """No legal move could be produced for the current iteration.

    The caller decides whether to stop the search or free up tabu entries and retry.
    """


class InvariantViolationError(TimetableOptimiserError, RuntimeError):
    """Internal state became inconsistent; the run cannot continue."""
