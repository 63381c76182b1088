"""
Guarded Execution: Status Snapshot

Immutable, read-only views of the limit registry, circuit breaker and test
mode progress. Views hold copies, never live references, so they can be
handed to any reporting surface and serialized freely.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from guarded_execution.circuit_breaker import CircuitBreaker
from guarded_execution.execution_models import CircuitState, LimitRegistry


@dataclass(frozen=True)
class LimitsView:
    max_slippage_bps: int
    max_gas_price_units: int
    production_trade_ceiling: Decimal
    applicable_trade_ceiling: Decimal
    authorized_counterparties: Tuple[str, ...]

    @property
    def max_slippage_pct(self) -> Decimal:
        return Decimal(self.max_slippage_bps) / 100


@dataclass(frozen=True)
class CircuitBreakerView:
    state: CircuitState
    consecutive_failures: int
    failure_threshold: int
    trip_reason: Optional[str] = None
    tripped_at: Optional[str] = None

    @property
    def tripped(self) -> bool:
        return self.state is CircuitState.TRIPPED


@dataclass(frozen=True)
class TestModeView:
    __test__ = False

    enabled: bool
    trade_ceiling: Decimal
    max_trades: int
    completed_trades: int

    @property
    def remaining_trades(self) -> int:
        return max(self.max_trades - self.completed_trades, 0)


@dataclass(frozen=True)
class StatusView:
    limits: LimitsView
    circuit_breaker: CircuitBreakerView
    test_mode: TestModeView

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict (Decimals as strings, enums as values)."""
        return {
            "limits": {
                "max_slippage_bps": self.limits.max_slippage_bps,
                "max_gas_price_units": self.limits.max_gas_price_units,
                "production_trade_ceiling": str(self.limits.production_trade_ceiling),
                "applicable_trade_ceiling": str(self.limits.applicable_trade_ceiling),
                "authorized_counterparties": list(self.limits.authorized_counterparties),
            },
            "circuit_breaker": {
                "state": self.circuit_breaker.state.value,
                "tripped": self.circuit_breaker.tripped,
                "consecutive_failures": self.circuit_breaker.consecutive_failures,
                "failure_threshold": self.circuit_breaker.failure_threshold,
                "trip_reason": self.circuit_breaker.trip_reason,
                "tripped_at": self.circuit_breaker.tripped_at,
            },
            "test_mode": {
                "enabled": self.test_mode.enabled,
                "trade_ceiling": str(self.test_mode.trade_ceiling),
                "max_trades": self.test_mode.max_trades,
                "completed_trades": self.test_mode.completed_trades,
            },
        }


def build_snapshot(limits: LimitRegistry, breaker: CircuitBreaker) -> StatusView:
    """Copy current state into a StatusView. Caller holds the core lock."""
    breaker_state = breaker.get_state()
    profile = limits.test_mode
    return StatusView(
        limits=LimitsView(
            max_slippage_bps=limits.max_slippage_bps,
            max_gas_price_units=limits.max_gas_price_units,
            production_trade_ceiling=limits.production_trade_ceiling,
            applicable_trade_ceiling=limits.applicable_trade_ceiling,
            authorized_counterparties=tuple(sorted(limits.authorized_counterparties)),
        ),
        circuit_breaker=CircuitBreakerView(
            state=CircuitState(breaker_state["state"]),
            consecutive_failures=breaker_state["consecutive_failures"],
            failure_threshold=breaker_state["failure_threshold"],
            trip_reason=breaker_state["trip_reason"],
            tripped_at=breaker_state["tripped_at"],
        ),
        test_mode=TestModeView(
            enabled=profile.enabled,
            trade_ceiling=profile.trade_ceiling,
            max_trades=profile.max_trades,
            completed_trades=profile.completed_trades,
        ),
    )


def render_status_report(view: StatusView) -> str:
    """Plain-text safety status block for consoles and log files."""
    cb = view.circuit_breaker
    tm = view.test_mode
    lines = [
        "SAFETY STATUS",
        "=============",
        f"Test Mode: {'ENABLED' if tm.enabled else 'DISABLED'}",
        f"Circuit Breaker: {'TRIPPED' if cb.tripped else 'Ready'}",
        f"Consecutive Failures: {cb.consecutive_failures}/{cb.failure_threshold}",
        f"Max Trade Size: ${view.limits.applicable_trade_ceiling}",
        f"Max Gas Price: {view.limits.max_gas_price_units}",
        f"Slippage Protection: {view.limits.max_slippage_pct}% maximum",
        f"Test Trades Completed: {tm.completed_trades}/{tm.max_trades}",
        f"Authorized Counterparties: {len(view.limits.authorized_counterparties)}",
    ]
    if cb.tripped and cb.trip_reason:
        lines.insert(4, f"Trip Reason: {cb.trip_reason}")

    recommendations = status_recommendations(view)
    if recommendations:
        lines += ["", "RECOMMENDATIONS", "==============="]
        lines += [f"- {item}" for item in recommendations]
    return "\n".join(lines)


def status_recommendations(view: StatusView) -> List[str]:
    """Operator hints derived from a snapshot. Empty when nothing needs attention."""
    cb = view.circuit_breaker
    tm = view.test_mode
    hints = []
    if cb.tripped:
        hints.append("Circuit breaker is TRIPPED - investigate before disarming")
    if tm.enabled and tm.completed_trades >= tm.max_trades:
        hints.append("Test mode limit reached - review results before production")
    if cb.consecutive_failures > 0:
        hints.append(f"{cb.consecutive_failures} recent failures - check logs")
    return hints
