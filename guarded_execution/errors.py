"""
Guarded Execution: Error Taxonomy

Every failure path in the core updates state first and then surfaces one of
these to the caller. The core never decides to halt the process; callers
treat CircuitOpen and ValidationRejected as a signal to stop their loop.
"""

from typing import Optional


class GuardError(Exception):
    """Base class for all guarded execution errors."""


class ValidationRejected(GuardError):
    """A transaction intent violated a configured limit (breaker is tripped)."""

    def __init__(self, reason, message: str = ""):
        self.reason = reason
        self.message = message
        super().__init__(f"{reason.value}: {message}" if message else reason.value)


class CircuitOpen(GuardError):
    """Guarded operation refused because the circuit breaker is tripped."""

    def __init__(self, label: str, trip_reason: Optional[str] = None):
        self.label = label
        self.trip_reason = trip_reason
        detail = f" ({trip_reason})" if trip_reason else ""
        super().__init__(f"Circuit breaker is TRIPPED, refusing {label}{detail}")


class OperationFailed(GuardError):
    """
    The wrapped operation raised. Bookkeeping has already been applied.

    The original exception is available as ``cause`` and as ``__cause__``.
    ``breaker_tripped`` is True when this failure pushed the breaker over
    its threshold.
    """

    def __init__(self, label: str, cause: BaseException, breaker_tripped: bool = False):
        self.label = label
        self.cause = cause
        self.breaker_tripped = breaker_tripped
        super().__init__(f"{label} failed: {cause}")
