"""
Guarded Execution: Circuit Breaker

State machine with two states, READY and TRIPPED:
- READY -> TRIPPED when consecutive failures reach the threshold, when a
  validation rejection is reported, or when an operator arms it
- TRIPPED -> READY ONLY through reset(), which clears the flag and the
  failure counter together

There is no cooldown and no automatic recovery. A human decides.

All state is guarded by a single re-entrant lock. GuardedExecutionCore passes
in its own lock so breaker and test-mode counters move atomically together.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from guarded_execution.execution_models import CircuitState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    This is a STATE MACHINE, not a decision engine: it counts and flips,
    it never retries or waits.
    """

    def __init__(self, failure_threshold: int = 3, lock: Optional[threading.RLock] = None):
        if failure_threshold <= 0:
            raise ValueError(f"failure_threshold must be positive, got {failure_threshold}")

        self._failure_threshold = failure_threshold
        self._lock = lock if lock is not None else threading.RLock()
        self._consecutive_failures = 0
        self._tripped = False
        self._trip_reason: Optional[str] = None
        self._tripped_at: Optional[datetime] = None
        self._history: List[Dict[str, Any]] = []
        self._log_state_change("INIT", "Breaker initialized")

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def tripped(self) -> bool:
        with self._lock:
            return self._tripped

    @property
    def trip_reason(self) -> Optional[str]:
        with self._lock:
            return self._trip_reason

    @property
    def tripped_at(self) -> Optional[datetime]:
        with self._lock:
            return self._tripped_at

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return CircuitState.TRIPPED if self._tripped else CircuitState.READY

    def record_success(self) -> None:
        """Successful operation: the failure streak is over."""
        with self._lock:
            self._consecutive_failures = 0

    def record_failure(self) -> bool:
        """
        Count one failure and trip if the post-update count reaches the threshold.

        Returns:
            True if this call moved the breaker from READY to TRIPPED
        """
        with self._lock:
            self._consecutive_failures += 1
            if self._consecutive_failures >= self._failure_threshold:
                return self.trip(
                    f"Too many consecutive failures "
                    f"({self._consecutive_failures}/{self._failure_threshold})"
                )
            return False

    def trip(self, reason: str, actor: str = "system") -> bool:
        """
        Move to TRIPPED.

        Tripping an already tripped breaker keeps the original reason.

        Returns:
            True if the state changed
        """
        with self._lock:
            if self._tripped:
                return False
            self._tripped = True
            self._trip_reason = reason
            self._tripped_at = datetime.now(timezone.utc)
            self._log_state_change("TRIPPED", reason, actor, severity="CRITICAL")
            return True

    def reset(self, actor: str, reason: str) -> bool:
        """
        Move to READY and zero the failure counter in one step.

        Returns:
            True if the breaker was tripped before the call
        """
        with self._lock:
            was_tripped = self._tripped
            self._tripped = False
            self._consecutive_failures = 0
            self._trip_reason = None
            self._tripped_at = None
            self._log_state_change("RESET", reason, actor, severity="WARNING")
            return was_tripped

    def get_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "state": (CircuitState.TRIPPED if self._tripped else CircuitState.READY).value,
                "tripped": self._tripped,
                "consecutive_failures": self._consecutive_failures,
                "failure_threshold": self._failure_threshold,
                "trip_reason": self._trip_reason,
                "tripped_at": self._tripped_at.isoformat() if self._tripped_at else None,
            }

    def get_history(self) -> List[Dict[str, Any]]:
        """State changes, oldest first. Append-only."""
        with self._lock:
            return list(self._history)

    def _log_state_change(
        self,
        event_type: str,
        reason: str,
        actor: str = "system",
        severity: str = "INFO",
    ):
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "reason": reason,
            "actor": actor,
            "severity": severity,
            "state_snapshot": self.get_state(),
        }
        self._history.append(record)
        logger.log(
            getattr(logging, severity, logging.INFO),
            "circuit breaker %s by %s: %s",
            event_type,
            actor,
            reason,
        )
