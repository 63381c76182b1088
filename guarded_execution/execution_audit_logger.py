"""
Guarded Execution: Audit Logger

Audit logging is APPEND-ONLY:
- Every guard event (rejection, trip, reset, success, failure) is recorded
- Records are never modified or deleted
- Records can be mirrored to a JSON-lines file for later review

Listeners registered with add_listener() receive every record as a dict.
This is where an external alerting integration would attach; none ships here.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from guarded_execution.execution_models import GuardAuditRecord

logger = logging.getLogger(__name__)

AuditListener = Callable[[Dict[str, Any]], None]


class GuardAuditLogger:
    """
    Append-only audit logger for guard events.

    This is purely a STORAGE layer with NO business logic.
    """

    def __init__(self, log_file: Optional[str] = None):
        """
        Args:
            log_file: Path to append-only JSON-lines file.
                     If None, records are kept in memory only.
        """
        self.log_file = log_file
        self._memory_log: List[Dict[str, Any]] = []
        self._listeners: List[AuditListener] = []
        self._lock = threading.Lock()

        if self.log_file:
            try:
                Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)
                Path(self.log_file).touch(exist_ok=True)
            except OSError as exc:
                logger.warning(
                    "audit log file %s unavailable (%s), keeping records in memory only",
                    self.log_file,
                    exc,
                )
                self.log_file = None

    def add_listener(self, listener: AuditListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def log_event(
        self,
        event_type: str,
        label: str = "",
        note: str = "",
        actor: str = "guard",
        severity: str = "INFO",
        event_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Append one event.

        Returns:
            Record ID
        """
        record = GuardAuditRecord(
            event_type=event_type,
            label=label,
            event_data=event_data or {},
            note=note,
            actor=actor,
            severity=severity,
        )
        return self._append_record(record)

    def log_validation(self, label: str, result, intent_data: Dict[str, Any]) -> str:
        if result.ok:
            return self.log_event(
                "validation_passed", label, result.message, event_data=intent_data
            )
        return self.log_event(
            "validation_rejected",
            label,
            result.message,
            severity="WARNING",
            event_data={**intent_data, "reason": result.reason.value},
        )

    def log_circuit_tripped(self, reason: str, actor: str = "guard", label: str = "") -> str:
        return self.log_event(
            "circuit_tripped", label, f"Circuit breaker tripped: {reason}", actor, "CRITICAL"
        )

    def log_circuit_reset(self, actor: str, reason: str) -> str:
        return self.log_event(
            "circuit_reset", "", f"Circuit breaker reset: {reason}", actor, "WARNING"
        )

    def log_operation_blocked(self, label: str, trip_reason: Optional[str]) -> str:
        return self.log_event(
            "operation_blocked",
            label,
            f"Refused while tripped: {trip_reason}",
            severity="WARNING",
        )

    def log_operation_succeeded(self, label: str, event_data: Optional[Dict] = None) -> str:
        return self.log_event("operation_succeeded", label, f"{label} successful",
                              event_data=event_data)

    def log_operation_failed(self, label: str, error: str, event_data: Optional[Dict] = None) -> str:
        return self.log_event(
            "operation_failed",
            label,
            f"{label} failed: {error}",
            severity="WARNING",
            event_data=event_data or {"error": error},
        )

    def get_logs(
        self, event_type: Optional[str] = None, label: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Audit records, optionally filtered by event type and/or label."""
        with self._lock:
            logs = list(self._memory_log)

        if event_type:
            logs = [log for log in logs if log["event_type"] == event_type]

        if label:
            logs = [log for log in logs if log["label"] == label]

        return logs

    def export_logs_json(self) -> str:
        with self._lock:
            return json.dumps(self._memory_log, indent=2, default=str)

    def _append_record(self, record: GuardAuditRecord) -> str:
        record_dict = record.to_dict()
        with self._lock:
            self._memory_log.append(record_dict)
            listeners = list(self._listeners)

            if self.log_file:
                try:
                    with open(self.log_file, "a") as f:
                        f.write(json.dumps(record_dict, default=str) + "\n")
                except OSError as exc:
                    logger.warning("audit log write to %s failed: %s", self.log_file, exc)

        for listener in listeners:
            try:
                listener(record_dict)
            except Exception:
                logger.exception("audit listener failed for %s", record.event_type)

        return record.record_id
