"""
Guarded Execution

Operational safety envelope around a bot that submits blockchain transactions.
It does NOT pick trades or talk to the chain. It bounds what a single
transaction may do and stops everything once risk thresholds are crossed.

ARCHITECTURE:
- execution_models.py: LimitRegistry, TestModeProfile, TransactionIntent, ValidationResult
- safety_guards.py: pure checks (gas, trade size, test budget, counterparty), slippage helpers
- circuit_breaker.py: READY/TRIPPED state machine, manual reset only
- guarded_core.py: GuardedExecutionCore, the single instance collaborators share
- status_reporter.py: immutable StatusView snapshots and a text report
- execution_audit_logger.py: append-only record of every guard event
- config.py: environment settings and the build_core() factory

DEFAULT BEHAVIOR: any validation rejection trips the breaker, and a tripped
breaker refuses every guarded operation until an operator disarms it.
"""

from guarded_execution.errors import (
    GuardError,
    ValidationRejected,
    CircuitOpen,
    OperationFailed,
)
from guarded_execution.execution_models import (
    CircuitState,
    LimitRegistry,
    RejectionReason,
    TestModeProfile,
    TransactionIntent,
    ValidationResult,
)
from guarded_execution.circuit_breaker import CircuitBreaker
from guarded_execution.execution_audit_logger import GuardAuditLogger
from guarded_execution.guarded_core import GuardedExecutionCore
from guarded_execution.safety_guards import (
    SafetyGuards,
    calculate_safe_min_output,
    cap_approval_amount,
)
from guarded_execution.status_reporter import (
    StatusView,
    render_status_report,
    status_recommendations,
)

__all__ = [
    "GuardError",
    "ValidationRejected",
    "CircuitOpen",
    "OperationFailed",
    "CircuitState",
    "LimitRegistry",
    "RejectionReason",
    "TestModeProfile",
    "TransactionIntent",
    "ValidationResult",
    "CircuitBreaker",
    "GuardAuditLogger",
    "GuardedExecutionCore",
    "SafetyGuards",
    "calculate_safe_min_output",
    "cap_approval_amount",
    "StatusView",
    "render_status_report",
    "status_recommendations",
]
