"""
Guarded Execution: Core

The GuardedExecutionCore is the one object every collaborator receives:
- validate(): check a TransactionIntent, trip the breaker on ANY rejection
- execute_guarded(): refuse while tripped, run the operation, book the outcome
- snapshot(): immutable view of limits, breaker and test-mode progress
- arm() / disarm() / set_test_mode() and limit updates for operators

Construct it once at process start and pass it around. There is no
module-level instance.

Locking: a single RLock covers every read-modify-write of breaker state and
test-mode counters. It is NEVER held while the wrapped operation runs.
"""

import asyncio
import logging
import threading
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar

from guarded_execution.circuit_breaker import CircuitBreaker
from guarded_execution.errors import CircuitOpen, OperationFailed
from guarded_execution.execution_audit_logger import GuardAuditLogger
from guarded_execution.execution_models import (
    BPS_DENOMINATOR,
    CircuitState,
    LimitRegistry,
    TransactionIntent,
    ValidationResult,
    to_decimal,
)
from guarded_execution.safety_guards import (
    SafetyGuards,
    calculate_safe_min_output,
)
from guarded_execution.status_reporter import StatusView, build_snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GuardedExecutionCore:
    """Safety governor around transaction submission."""

    def __init__(
        self,
        limits: Optional[LimitRegistry] = None,
        failure_threshold: int = 3,
        audit_logger: Optional[GuardAuditLogger] = None,
    ):
        self._lock = threading.RLock()
        self.limits = limits if limits is not None else LimitRegistry()
        self.breaker = CircuitBreaker(failure_threshold, lock=self._lock)
        self.audit = audit_logger if audit_logger is not None else GuardAuditLogger()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, intent: TransactionIntent) -> ValidationResult:
        """
        Check an intent against the registry.

        A rejection is a safety incident: the breaker trips before this
        returns. The caller decides whether to halt its loop.
        """
        with self._lock:
            result = SafetyGuards.evaluate(intent, self.limits)
            if not result.ok:
                self._trip(f"{result.reason.value}: {result.message}", label=intent.label)

        self.audit.log_validation(intent.label, result, intent.to_dict())
        if result.ok:
            logger.debug("validated %s", intent.label)
        else:
            logger.error("rejected %s: %s", intent.label, result.message)
        return result

    def require_valid(self, intent: TransactionIntent) -> None:
        """validate() and raise ValidationRejected on rejection."""
        self.validate(intent).raise_for_rejection()

    # ------------------------------------------------------------------
    # Guarded execution
    # ------------------------------------------------------------------

    def execute_guarded(self, operation: Callable[[], T], label: str = "transaction") -> T:
        """
        Run operation() behind the breaker.

        Raises:
            CircuitOpen: breaker is tripped, operation was not invoked
            OperationFailed: operation raised; counters already updated

        KeyboardInterrupt and SystemExit stop the process rather than the
        operation, so they propagate without touching the counters.
        """
        self._check_open(label)
        logger.info("monitoring %s...", label)
        try:
            result = operation()
        except Exception as exc:
            raise self._record_failure(label, exc) from exc
        self._record_success(label)
        return result

    async def execute_guarded_async(
        self, operation: Callable[[], Awaitable[T]], label: str = "transaction"
    ) -> T:
        """
        Same contract as execute_guarded for a coroutine factory.

        Cancellation (e.g. the caller's asyncio.wait_for timeout) counts as a
        failure. The CancelledError itself is re-raised unchanged.
        """
        self._check_open(label)
        logger.info("monitoring %s...", label)
        try:
            result = await operation()
        except asyncio.CancelledError as exc:
            self._record_failure(label, exc)
            raise
        except Exception as exc:
            raise self._record_failure(label, exc) from exc
        self._record_success(label)
        return result

    def _check_open(self, label: str) -> None:
        with self._lock:
            if not self.breaker.tripped:
                return
            trip_reason = self.breaker.trip_reason
        self.audit.log_operation_blocked(label, trip_reason)
        logger.error("refusing %s: circuit breaker is TRIPPED (%s)", label, trip_reason)
        raise CircuitOpen(label, trip_reason)

    def _record_success(self, label: str) -> None:
        with self._lock:
            self.breaker.record_success()
            profile = self.limits.test_mode
            if profile.enabled:
                profile.completed_trades += 1
            completed, max_trades, enabled = (
                profile.completed_trades,
                profile.max_trades,
                profile.enabled,
            )

        if enabled:
            logger.info("test trade %d/%d completed", completed, max_trades)
        logger.info("%s successful", label)
        self.audit.log_operation_succeeded(
            label, {"test_mode": enabled, "completed_trades": completed}
        )

    def _record_failure(self, label: str, exc: BaseException) -> OperationFailed:
        with self._lock:
            tripped = self.breaker.record_failure()
            failures = self.breaker.consecutive_failures
            reason = self.breaker.trip_reason

        # CancelledError and friends carry no message
        error = str(exc) or type(exc).__name__
        logger.error(
            "%s failed (%d/%d consecutive): %s",
            label,
            failures,
            self.breaker.failure_threshold,
            error,
        )
        self.audit.log_operation_failed(
            label,
            error,
            {"error": error, "error_type": type(exc).__name__,
             "consecutive_failures": failures},
        )
        if tripped:
            self.audit.log_circuit_tripped(reason, label=label)
        return OperationFailed(label, exc, breaker_tripped=tripped)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def snapshot(self) -> StatusView:
        """Read-only copy of current state. No caching, no side effects."""
        with self._lock:
            return build_snapshot(self.limits, self.breaker)

    @property
    def state(self) -> CircuitState:
        return self.breaker.state

    def is_tripped(self) -> bool:
        return self.breaker.tripped

    def safe_min_output(self, expected_out) -> Decimal:
        """Minimum swap output under the configured slippage bound."""
        with self._lock:
            bps = self.limits.max_slippage_bps
        return calculate_safe_min_output(expected_out, bps)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def arm(self, actor: str = "operator", reason: str = "Circuit breaker manually activated") -> bool:
        """Trip the breaker by hand. Returns True if the state changed."""
        with self._lock:
            changed = self._trip(reason, actor=actor)
        logger.warning("circuit breaker armed by %s: %s", actor, reason)
        return changed

    def disarm(
        self,
        actor: str = "operator",
        reason: str = "Circuit breaker manually deactivated",
    ) -> bool:
        """
        Clear the trip and zero the failure counter atomically.

        Use with caution: this is the only way back to READY. Disarming a
        breaker that is already READY is not audited.
        """
        with self._lock:
            was_tripped = self.breaker.reset(actor, reason)
        if not was_tripped:
            logger.debug("disarm by %s ignored: circuit breaker already READY", actor)
            return False
        self.audit.log_circuit_reset(actor, reason)
        logger.warning("circuit breaker disarmed by %s - USE WITH CAUTION", actor)
        return True

    def set_test_mode(self, enabled: bool, actor: str = "operator") -> None:
        """
        Switch test mode on or off.

        Turning it off means PRODUCTION MODE. Treat that as one-way in practice,
        although nothing here prevents switching back.
        """
        with self._lock:
            previous = self.limits.test_mode.enabled
            self.limits.test_mode.enabled = enabled

        if previous and not enabled:
            logger.warning("test mode disabled by %s - PRODUCTION MODE ACTIVATED", actor)
        elif enabled and not previous:
            logger.warning("test mode re-enabled by %s", actor)
        self.audit.log_event(
            "test_mode_changed",
            note=f"test mode {'enabled' if enabled else 'disabled'}",
            actor=actor,
            severity="WARNING",
            event_data={"previous": previous, "enabled": enabled},
        )

    def authorize_counterparty(self, address: str, actor: str = "operator") -> None:
        if not address:
            raise ValueError("address is required")
        with self._lock:
            self.limits.authorized_counterparties.add(address)
        logger.info("counterparty %s authorized by %s", address, actor)
        self.audit.log_event(
            "limits_updated", note=f"authorized {address}", actor=actor,
            event_data={"authorized": address},
        )

    def revoke_counterparty(self, address: str, actor: str = "operator") -> bool:
        """Returns True if the address was on the allow-list."""
        with self._lock:
            present = address in self.limits.authorized_counterparties
            self.limits.authorized_counterparties.discard(address)
        if present:
            logger.warning("counterparty %s revoked by %s", address, actor)
            self.audit.log_event(
                "limits_updated", note=f"revoked {address}", actor=actor,
                severity="WARNING", event_data={"revoked": address},
            )
        return present

    def update_limits(
        self,
        max_slippage_bps: Optional[int] = None,
        max_gas_price_units: Optional[int] = None,
        production_trade_ceiling=None,
        test_trade_ceiling=None,
        max_test_trades: Optional[int] = None,
        actor: str = "operator",
    ) -> None:
        """
        Change numeric thresholds. All new values are checked before any is applied.

        Raises:
            ValueError: a value is out of range; nothing is changed
        """
        changes = {}
        if max_slippage_bps is not None:
            if not 0 <= max_slippage_bps <= BPS_DENOMINATOR:
                raise ValueError(
                    f"max_slippage_bps must be within 0-{BPS_DENOMINATOR}, got {max_slippage_bps}"
                )
            changes["max_slippage_bps"] = max_slippage_bps
        if max_gas_price_units is not None:
            if max_gas_price_units <= 0:
                raise ValueError(f"max_gas_price_units must be positive, got {max_gas_price_units}")
            changes["max_gas_price_units"] = max_gas_price_units
        if production_trade_ceiling is not None:
            ceiling = to_decimal(production_trade_ceiling, "production_trade_ceiling")
            if ceiling <= 0:
                raise ValueError(f"production_trade_ceiling must be positive, got {ceiling}")
            changes["production_trade_ceiling"] = ceiling
        if test_trade_ceiling is not None:
            ceiling = to_decimal(test_trade_ceiling, "test_trade_ceiling")
            if ceiling <= 0:
                raise ValueError(f"test_trade_ceiling must be positive, got {ceiling}")
            changes["test_trade_ceiling"] = ceiling
        if max_test_trades is not None:
            if max_test_trades < 0:
                raise ValueError(f"max_test_trades must be non-negative, got {max_test_trades}")
            changes["max_test_trades"] = max_test_trades

        if not changes:
            return

        with self._lock:
            for name, value in changes.items():
                if name == "test_trade_ceiling":
                    self.limits.test_mode.trade_ceiling = value
                elif name == "max_test_trades":
                    self.limits.test_mode.max_trades = value
                else:
                    setattr(self.limits, name, value)

        logger.warning("limits updated by %s: %s", actor, changes)
        self.audit.log_event(
            "limits_updated",
            note="numeric limits changed",
            actor=actor,
            severity="WARNING",
            event_data={name: str(value) for name, value in changes.items()},
        )

    def _trip(self, reason: str, actor: str = "guard", label: str = "") -> bool:
        """Trip under the (already held) lock and audit a real state change."""
        changed = self.breaker.trip(reason, actor=actor)
        if changed:
            self.audit.log_circuit_tripped(reason, actor=actor, label=label)
        return changed
