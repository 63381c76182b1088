import json
import pytest

from guarded_execution.execution_audit_logger import GuardAuditLogger
from guarded_execution.execution_models import GuardAuditRecord


def test_records_are_appended_in_order():
    audit = GuardAuditLogger()
    audit.log_event("operation_succeeded", label="a")
    audit.log_event("operation_failed", label="b", severity="WARNING")
    logs = audit.get_logs()
    assert [log["label"] for log in logs] == ["a", "b"]


def test_get_logs_returns_copy():
    audit = GuardAuditLogger()
    audit.log_event("circuit_reset", actor="alice")
    audit.get_logs().clear()
    assert len(audit.get_logs()) == 1


def test_filters():
    audit = GuardAuditLogger()
    audit.log_operation_succeeded("swap")
    audit.log_operation_failed("swap", "reverted")
    audit.log_operation_failed("approve", "reverted")
    assert len(audit.get_logs(event_type="operation_failed")) == 2
    assert len(audit.get_logs(event_type="operation_failed", label="swap")) == 1


def test_file_mirror(tmp_path):
    log_file = tmp_path / "audit" / "guard.jsonl"
    audit = GuardAuditLogger(str(log_file))
    audit.log_circuit_tripped("too many failures")
    audit.log_circuit_reset("alice", "reviewed")

    lines = log_file.read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["severity"] == "CRITICAL"
    assert json.loads(lines[1])["actor"] == "alice"


def test_listener_receives_records():
    audit = GuardAuditLogger()
    seen = []
    audit.add_listener(seen.append)
    audit.log_circuit_tripped("manual", actor="ops")
    assert seen[0]["event_type"] == "circuit_tripped"


def test_broken_listener_does_not_stop_logging():
    audit = GuardAuditLogger()

    def broken(record):
        raise RuntimeError("pager offline")

    audit.add_listener(broken)
    audit.log_event("operation_blocked", label="swap")
    assert len(audit.get_logs()) == 1


def test_export_logs_json():
    audit = GuardAuditLogger()
    audit.log_event("limits_updated", actor="alice")
    exported = json.loads(audit.export_logs_json())
    assert exported[0]["event_type"] == "limits_updated"


def test_record_requires_event_type():
    with pytest.raises(ValueError):
        GuardAuditRecord(event_type="")


def test_record_requires_actor():
    with pytest.raises(ValueError):
        GuardAuditRecord(event_type="circuit_reset", actor="")
