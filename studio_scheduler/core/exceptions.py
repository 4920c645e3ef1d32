"""
Exception types raised by the scheduling engines and operations.
"""


class SchedulingError(Exception):
    """Base class for all scheduling failures."""


class InputDataError(SchedulingError, ValueError):
    """A performance or priority row is malformed. The row is skipped, never fatal."""

    def __init__(self, message: str, row=None):
        super().__init__(message)
        self.row = row


class EmptyResultError(SchedulingError):
    """A run that was expected to produce classes produced none."""


class FatalEngineError(SchedulingError):
    """Unexpected internal failure. The run aborts and nothing is committed."""


class OperationInProgressError(SchedulingError):
    """Another engine run currently owns the schedule."""
