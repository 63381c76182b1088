import json
import pytest
from dataclasses import FrozenInstanceError
from decimal import Decimal

from guarded_execution.errors import OperationFailed
from guarded_execution.execution_models import CircuitState, TransactionIntent
from guarded_execution.status_reporter import render_status_report, status_recommendations


def test_snapshot_is_idempotent(core):
    assert core.snapshot() == core.snapshot()


def test_snapshot_reflects_latest_state(core):
    before = core.snapshot()
    core.execute_guarded(lambda: "ok", "swap")
    after = core.snapshot()
    assert before.test_mode.completed_trades == 0
    assert after.test_mode.completed_trades == 1
    assert before != after


def test_snapshot_is_a_copy(core):
    view = core.snapshot()
    core.authorize_counterparty("0xNEW")
    core.arm()
    assert "0xNEW" not in view.limits.authorized_counterparties
    assert view.circuit_breaker.state is CircuitState.READY


def test_snapshot_is_frozen(core):
    view = core.snapshot()
    with pytest.raises(FrozenInstanceError):
        view.test_mode.completed_trades = 99


def test_snapshot_has_no_side_effects(core, audit_logger):
    history_len = len(core.breaker.get_history())
    core.snapshot()
    core.snapshot()
    assert audit_logger.get_logs() == []
    assert len(core.breaker.get_history()) == history_len


def test_to_dict_is_json_safe(core):
    core.validate(TransactionIntent(gas_price=5000))
    data = core.snapshot().to_dict()
    decoded = json.loads(json.dumps(data))
    assert decoded["circuit_breaker"]["state"] == "TRIPPED"
    assert decoded["circuit_breaker"]["tripped"] is True
    assert decoded["limits"]["applicable_trade_ceiling"] == "500"
    assert decoded["test_mode"] == {
        "enabled": True,
        "trade_ceiling": "500",
        "max_trades": 5,
        "completed_trades": 0,
    }


def test_remaining_trades(core):
    core.execute_guarded(lambda: "ok", "swap")
    assert core.snapshot().test_mode.remaining_trades == 4


def test_render_status_report(core):
    report = render_status_report(core.snapshot())
    assert "Test Mode: ENABLED" in report
    assert "Circuit Breaker: Ready" in report
    assert "Consecutive Failures: 0/3" in report
    assert "Slippage Protection: 0.5% maximum" in report
    assert "Test Trades Completed: 0/5" in report


def test_render_status_report_shows_trip_reason(core):
    core.arm("ops", "manual halt")
    report = render_status_report(core.snapshot())
    assert "Circuit Breaker: TRIPPED" in report
    assert "Trip Reason: manual halt" in report


def test_healthy_report_has_no_recommendations(core):
    assert "RECOMMENDATIONS" not in render_status_report(core.snapshot())


def test_recommendations_for_recent_failures(core):
    with pytest.raises(OperationFailed):
        core.execute_guarded(lambda: 1 / 0, "swap")
    report = render_status_report(core.snapshot())
    assert "RECOMMENDATIONS" in report
    assert "1 recent failures - check logs" in report


def test_recommendations_when_test_budget_spent(core):
    core.update_limits(max_test_trades=1)
    core.execute_guarded(lambda: "ok", "swap")
    hints = status_recommendations(core.snapshot())
    assert hints == ["Test mode limit reached - review results before production"]


def test_recommendations_when_tripped(core):
    core.arm("ops", "manual halt")
    hints = status_recommendations(core.snapshot())
    assert hints[0].startswith("Circuit breaker is TRIPPED")


def test_max_slippage_pct(core):
    assert core.snapshot().limits.max_slippage_pct == Decimal("0.5")
