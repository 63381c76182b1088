import sys
import os
from decimal import Decimal

import pytest

# Ensure repository root is on sys.path for package imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from guarded_execution.execution_audit_logger import GuardAuditLogger
from guarded_execution.execution_models import LimitRegistry, TestModeProfile
from guarded_execution.guarded_core import GuardedExecutionCore


@pytest.fixture
def limits():
    """Registry matching the staged-rollout defaults: gas 1000, $500 x 5 trades."""
    return LimitRegistry(
        max_gas_price_units=1000,
        production_trade_ceiling=Decimal("10000"),
        test_mode=TestModeProfile(
            enabled=True, trade_ceiling=Decimal("500"), max_trades=5, completed_trades=0
        ),
    )


@pytest.fixture
def audit_logger():
    return GuardAuditLogger()


@pytest.fixture
def core(limits, audit_logger):
    return GuardedExecutionCore(limits=limits, failure_threshold=3, audit_logger=audit_logger)
