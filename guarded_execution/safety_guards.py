"""
Guarded Execution: Safety Guards

Safety guards are PURELY MECHANICAL VALIDATION:
- Gas price against the registry ceiling
- Trade size against the applicable (test or production) ceiling
- Test-mode trade budget
- Counterparty against the allow-list

Each check returns a (passed, reason, message) tuple and has no side effects.
Tripping the circuit breaker on a rejection is the core's job, not ours.
"""

from decimal import Decimal
from typing import Optional, Tuple

from guarded_execution.execution_models import (
    BPS_DENOMINATOR,
    LimitRegistry,
    RejectionReason,
    TransactionIntent,
    ValidationResult,
    to_decimal,
)

CheckResult = Tuple[bool, Optional[RejectionReason], str]

# Token approvals are capped at 110% of the amount actually needed
DEFAULT_APPROVAL_HEADROOM = Decimal("1.1")


class SafetyGuards:
    """
    Pure predicates over a TransactionIntent and a LimitRegistry.

    evaluate() runs the checks in a fixed order and stops at the first
    violation: any single violation is fatal to the operation.
    """

    @staticmethod
    def check_gas_price(intent: TransactionIntent, limits: LimitRegistry) -> CheckResult:
        if intent.gas_price is None:
            return True, None, "Gas price not provided"

        if intent.gas_price > limits.max_gas_price_units:
            return (
                False,
                RejectionReason.GAS_PRICE_EXCEEDED,
                f"Gas price too high: {intent.gas_price} > {limits.max_gas_price_units}",
            )
        return True, None, "Gas price within limit"

    @staticmethod
    def check_trade_size(intent: TransactionIntent, limits: LimitRegistry) -> CheckResult:
        """Compare the amount with the test ceiling or the production ceiling."""
        if intent.monetary_amount is None:
            return True, None, "Trade amount not provided"

        ceiling = limits.applicable_trade_ceiling
        if intent.monetary_amount > ceiling:
            mode = "test" if limits.test_mode.enabled else "production"
            return (
                False,
                RejectionReason.TRADE_SIZE_EXCEEDED,
                f"Trade size too large: ${intent.monetary_amount} > ${ceiling} ({mode} ceiling)",
            )
        return True, None, "Trade size within limit"

    @staticmethod
    def check_test_limit(intent: TransactionIntent, limits: LimitRegistry) -> CheckResult:
        """Independent of the intent's fields: only the test-mode budget matters."""
        profile = limits.test_mode
        if profile.limit_reached:
            return (
                False,
                RejectionReason.TEST_LIMIT_REACHED,
                f"Test mode limit reached ({profile.completed_trades}/{profile.max_trades}) "
                "- manual review required",
            )
        return True, None, "Test trade budget available"

    @staticmethod
    def check_counterparty(intent: TransactionIntent, limits: LimitRegistry) -> CheckResult:
        if intent.counterparty is None:
            return True, None, "Counterparty not provided"

        # Exact match: checksummed and lowercase forms are different entries
        if not limits.is_authorized(intent.counterparty):
            return (
                False,
                RejectionReason.UNAUTHORIZED_COUNTERPARTY,
                f"Unauthorized counterparty: {intent.counterparty}",
            )
        return True, None, "Counterparty is allow-listed"

    @staticmethod
    def evaluate(intent: TransactionIntent, limits: LimitRegistry) -> ValidationResult:
        checks = (
            SafetyGuards.check_gas_price,
            SafetyGuards.check_trade_size,
            SafetyGuards.check_test_limit,
            SafetyGuards.check_counterparty,
        )
        for check in checks:
            passed, reason, message = check(intent, limits)
            if not passed:
                return ValidationResult.rejected(reason, message)
        return ValidationResult.accepted()


def calculate_safe_min_output(expected_out, max_slippage_bps: int) -> Decimal:
    """
    Minimum acceptable output for a swap given a slippage bound.

    calculate_safe_min_output(950, 50) == Decimal("945.25")
    """
    expected = to_decimal(expected_out, "expected_out")
    if expected < 0:
        raise ValueError(f"expected_out must be non-negative, got {expected}")
    if not 0 <= max_slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"max_slippage_bps must be within 0-{BPS_DENOMINATOR}")
    return expected * (BPS_DENOMINATOR - max_slippage_bps) / BPS_DENOMINATOR


def cap_approval_amount(amount, headroom: Decimal = DEFAULT_APPROVAL_HEADROOM) -> Decimal:
    """Bound a token approval to the needed amount plus headroom, never unlimited."""
    needed = to_decimal(amount, "amount")
    headroom = to_decimal(headroom, "headroom")
    if needed < 0:
        raise ValueError(f"amount must be non-negative, got {needed}")
    if headroom < 1:
        raise ValueError(f"headroom must be at least 1, got {headroom}")
    return needed * headroom
