"""
Guarded Execution: Data Models

This module defines the data contracts shared by the guard components:
- LimitRegistry / TestModeProfile: numeric thresholds and the staged-rollout profile
- TransactionIntent: the attributes of one proposed transaction
- ValidationResult: discriminated outcome of validating an intent
- GuardAuditRecord: append-only record of a guard event

These models carry NO locking. The GuardedExecutionCore owns the lock and is
the only component that mutates a registry after construction.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Dict, Any, Set
from datetime import datetime, timezone
from uuid import uuid4

from guarded_execution.errors import ValidationRejected


# Allow-listed flashloan providers and DEX factories (exact match, as checksummed)
DEFAULT_AUTHORIZED_COUNTERPARTIES = frozenset(
    {
        "0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9",  # Aave V3 Pool
        "0x89d065572136814230A55DdEeDDEC9DF34EB0B76",  # Venus Pool
        "0x1F98431c8aD98523631AE4a59f267346ea31F984",  # Uniswap V3 Factory
        "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",  # PancakeSwap Factory
    }
)

BPS_DENOMINATOR = 10000


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """Coerce int/float/str/Decimal to a finite Decimal, raising ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got bool")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so floats keep their printed value (0.1 -> Decimal("0.1"))
            result = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"{name} must be numeric, got {value!r}")
    # NaN and Infinity cannot be compared against a ceiling
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


class RejectionReason(Enum):
    """Why a transaction intent was rejected."""
    GAS_PRICE_EXCEEDED = "GAS_PRICE_EXCEEDED"
    TRADE_SIZE_EXCEEDED = "TRADE_SIZE_EXCEEDED"
    TEST_LIMIT_REACHED = "TEST_LIMIT_REACHED"
    UNAUTHORIZED_COUNTERPARTY = "UNAUTHORIZED_COUNTERPARTY"


class CircuitState(Enum):
    """Circuit breaker states. TRIPPED only clears through an explicit disarm."""
    READY = "READY"
    TRIPPED = "TRIPPED"


@dataclass
class TestModeProfile:
    """
    Restricted operating profile for staged rollout.

    completed_trades only ever goes up while enabled. There is no reset;
    restarting the process is the only way back to zero.
    """

    __test__ = False  # not a pytest test class

    enabled: bool = True
    trade_ceiling: Decimal = Decimal("500")
    max_trades: int = 5
    completed_trades: int = 0

    def __post_init__(self):
        self.trade_ceiling = to_decimal(self.trade_ceiling, "trade_ceiling")
        if self.trade_ceiling <= 0:
            raise ValueError(f"trade_ceiling must be positive, got {self.trade_ceiling}")
        if self.max_trades < 0:
            raise ValueError(f"max_trades must be non-negative, got {self.max_trades}")
        if self.completed_trades < 0:
            raise ValueError(
                f"completed_trades must be non-negative, got {self.completed_trades}"
            )

    @property
    def limit_reached(self) -> bool:
        return self.enabled and self.completed_trades >= self.max_trades

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "trade_ceiling": str(self.trade_ceiling),
            "max_trades": self.max_trades,
            "completed_trades": self.completed_trades,
        }


@dataclass
class LimitRegistry:
    """
    Process-wide numeric thresholds and allow-list.

    Read-mostly. After construction it is mutated only through the
    administrative methods of GuardedExecutionCore.
    """

    # Bound on acceptable output shortfall, in basis points (0-10000)
    max_slippage_bps: int = 50

    # Gas price ceiling in the network's smallest pricing unit (gwei on BSC)
    max_gas_price_units: int = 1000

    # USD ceiling per trade once test mode is disabled
    production_trade_ceiling: Decimal = Decimal("10000")

    authorized_counterparties: Set[str] = field(
        default_factory=lambda: set(DEFAULT_AUTHORIZED_COUNTERPARTIES)
    )

    test_mode: TestModeProfile = field(default_factory=TestModeProfile)

    def __post_init__(self):
        self.production_trade_ceiling = to_decimal(
            self.production_trade_ceiling, "production_trade_ceiling"
        )
        self.authorized_counterparties = set(self.authorized_counterparties)
        if not 0 <= self.max_slippage_bps <= BPS_DENOMINATOR:
            raise ValueError(
                f"max_slippage_bps must be within 0-{BPS_DENOMINATOR}, "
                f"got {self.max_slippage_bps}"
            )
        if self.max_gas_price_units <= 0:
            raise ValueError(
                f"max_gas_price_units must be positive, got {self.max_gas_price_units}"
            )
        if self.production_trade_ceiling <= 0:
            raise ValueError(
                "production_trade_ceiling must be positive, "
                f"got {self.production_trade_ceiling}"
            )

    @property
    def applicable_trade_ceiling(self) -> Decimal:
        """Test-mode ceiling while test mode is on, production ceiling otherwise."""
        if self.test_mode.enabled:
            return self.test_mode.trade_ceiling
        return self.production_trade_ceiling

    def is_authorized(self, counterparty: str) -> bool:
        return counterparty in self.authorized_counterparties

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_slippage_bps": self.max_slippage_bps,
            "max_gas_price_units": self.max_gas_price_units,
            "production_trade_ceiling": str(self.production_trade_ceiling),
            "applicable_trade_ceiling": str(self.applicable_trade_ceiling),
            "authorized_counterparties": sorted(self.authorized_counterparties),
            "test_mode": self.test_mode.to_dict(),
        }


@dataclass
class TransactionIntent:
    """
    Attributes of one proposed transaction.

    Every field is optional. Absent fields are simply not checked
    ("check what's provided"), so a gas-only intent is valid input.
    """

    counterparty: Optional[str] = None
    monetary_amount: Optional[Decimal] = None
    gas_price: Optional[int] = None

    # Free text used in log lines and audit records
    label: str = "transaction"

    def __post_init__(self):
        if self.monetary_amount is not None:
            self.monetary_amount = to_decimal(self.monetary_amount, "monetary_amount")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counterparty": self.counterparty,
            "monetary_amount": (
                str(self.monetary_amount) if self.monetary_amount is not None else None
            ),
            "gas_price": self.gas_price,
            "label": self.label,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Ok, or Rejected(reason). Truthy when the intent passed."""

    ok: bool
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def accepted(cls, message: str = "All checks passed") -> "ValidationResult":
        return cls(ok=True, message=message)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "ValidationResult":
        return cls(ok=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_rejection(self) -> None:
        """Raise ValidationRejected if this result is a rejection."""
        if not self.ok:
            raise ValidationRejected(self.reason, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }


@dataclass
class GuardAuditRecord:
    """
    APPEND-ONLY audit record for one guard event.

    Examples of event_type: "validation_rejected", "circuit_tripped",
    "operation_failed", "circuit_reset", "test_mode_changed"
    """

    record_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str = ""
    label: str = ""
    event_data: Dict[str, Any] = field(default_factory=dict)
    note: str = ""

    # Who/what triggered the event: "guard", an operator name, ...
    actor: str = "guard"

    # CRITICAL: breaker trips. WARNING: rejections, failures, resets. INFO: the rest
    severity: str = "INFO"

    def __post_init__(self):
        if not self.event_type:
            raise ValueError("event_type is required")
        if not self.actor:
            raise ValueError("actor is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "label": self.label,
            "event_data": self.event_data,
            "note": self.note,
            "actor": self.actor,
            "severity": self.severity,
        }
