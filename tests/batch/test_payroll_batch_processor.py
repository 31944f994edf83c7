"""
Tests for PayrollBatchProcessor.

Covers:
- Run status (completed / partially completed / failed / empty)
- Per-item isolation of computation and sink failures
- Chunking and status transitions
- Rate unit anomalies in result data
- Leave and mid-month advances applied once per employee
- Persistence through PayrollRepository
"""

import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from payroll_batch.domain.types import BatchItemStatus, BatchJobStatus, PayrollAssignment
from payroll_batch.processor import PayrollBatchProcessor, rate_unit_anomalies
from payroll_kernel.exceptions import PayrollSinkError
from payroll_modules.payroll.config import PayrollConfig
from payroll_modules.payroll.models import (
    Activity,
    DayType,
    EmployeeEntry,
    EmployeePayroll,
    LeaveRecord,
    PayType,
    WorkLog,
)
from payroll_modules.payroll.repository import PayrollRepository


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _activity(amount: str, rate_unit: str = "Hour", pay_code_id: str = "BASE") -> Activity:
    return Activity(
        pay_code_id=pay_code_id,
        description="Base hourly wage",
        pay_type=PayType.BASE,
        rate_unit=rate_unit,
        rate_used=Decimal("10"),
        calculated_amount=Decimal(amount),
        hours_applied=Decimal("8"),
    )


def _log(*entries: EmployeeEntry, log_id: int = 1, log_date: date = date(2025, 3, 10)) -> WorkLog:
    return WorkLog(
        id=log_id,
        log_date=log_date,
        shift=1,
        day_type=DayType.BIASA,
        section="Harvest",
        employee_entries=entries,
    )


def _entry(employee_id: str, job_id: str, *activities: Activity) -> EmployeeEntry:
    return EmployeeEntry(employee_id=employee_id, job_id=job_id, activities=activities)


class _RecordingSink:
    """Collects saved payrolls and the threads that saved them."""

    def __init__(self, fail_for: set[str] | None = None):
        self.saved: list[EmployeePayroll] = []
        self.threads: set[int] = set()
        self._fail_for = fail_for or set()

    def save(self, payroll: EmployeePayroll) -> None:
        self.threads.add(threading.get_ident())
        key = f"{payroll.employee_id}-{payroll.job_type}"
        if key in self._fail_for:
            raise PayrollSinkError(key, "disk full")
        self.saved.append(payroll)


def _broken_activity() -> Activity:
    # No captured amount: the fold cannot add it
    return Activity(
        pay_code_id="BASE",
        description="Base hourly wage",
        pay_type=PayType.BASE,
        rate_unit="Hour",
        rate_used=Decimal("10"),
        calculated_amount=None,
        hours_applied=Decimal("8"),
    )


def _assignments(n: int) -> list[PayrollAssignment]:
    return [PayrollAssignment(f"E{i}", "MEE", "Harvest") for i in range(1, n + 1)]


def _logs_for(n: int) -> list[WorkLog]:
    return [_log(*(_entry(f"E{i}", "MEE", _activity("80")) for i in range(1, n + 1)))]


# ===========================================================================
# Run status
# ===========================================================================


class TestRunStatus:
    def test_all_succeed(self, march_2025, deterministic_clock):
        sink = _RecordingSink()
        processor = PayrollBatchProcessor(sink=sink, clock=deterministic_clock)
        result = processor.run(_logs_for(3), _assignments(3), march_2025)

        assert result.status == BatchJobStatus.COMPLETED
        assert result.total_items == 3
        assert result.succeeded == 3
        assert result.failed == 0
        assert [p.employee_id for p in result.payrolls] == ["E1", "E2", "E3"]
        assert len(sink.saved) == 3
        assert result.period_label == "2025-03"
        assert result.started_at == deterministic_clock.now()

    def test_empty_run_completes(self, march_2025):
        result = PayrollBatchProcessor().run([], [], march_2025)
        assert result.status == BatchJobStatus.COMPLETED
        assert result.total_items == 0
        assert result.item_results == ()

    def test_partial_failure(self, march_2025):
        sink = _RecordingSink(fail_for={"E2-MEE"})
        result = PayrollBatchProcessor(sink=sink).run(_logs_for(3), _assignments(3), march_2025)

        assert result.status == BatchJobStatus.PARTIALLY_COMPLETED
        assert result.succeeded == 2
        assert result.failed == 1
        (failed,) = result.failed_items
        assert failed.item_key == "E2-MEE"
        assert failed.item_index == 1
        assert failed.error_code == "PAYROLL_SINK_ERROR"
        assert "disk full" in failed.error_message
        assert [p.employee_id for p in sink.saved] == ["E1", "E3"]

    def test_all_fail(self, march_2025):
        logs = [_log(_entry("E1", "MEE", _broken_activity()), _entry("E2", "MEE", _broken_activity()))]
        result = PayrollBatchProcessor().run(logs, _assignments(2), march_2025)
        assert result.status == BatchJobStatus.FAILED
        assert result.failed == 2
        assert all(r.error_code == "UNHANDLED_EXCEPTION" for r in result.item_results)

    def test_employee_without_work_gets_zero_payroll(self, march_2025):
        result = PayrollBatchProcessor().run(
            _logs_for(1), [PayrollAssignment("E1", "MEE"), PayrollAssignment("E9", "MEE")], march_2025,
        )
        assert result.status == BatchJobStatus.COMPLETED
        assert result.payrolls[1].gross_pay == Decimal("0.00")
        assert result.payrolls[1].section == "Unknown"


# ===========================================================================
# Chunking, statuses and threads
# ===========================================================================


class TestExecution:
    def test_results_in_assignment_order_across_chunks(self, march_2025):
        config = PayrollConfig(batch_size=2, max_workers=2)
        result = PayrollBatchProcessor(config=config).run(_logs_for(5), _assignments(5), march_2025)
        assert [r.item_index for r in result.item_results] == [0, 1, 2, 3, 4]
        assert [r.item_key for r in result.item_results] == [f"E{i}-MEE" for i in range(1, 6)]

    def test_status_transitions(self, march_2025):
        seen: dict[str, list[BatchItemStatus]] = {}

        def listener(item_key, status):
            seen.setdefault(item_key, []).append(status)

        sink = _RecordingSink(fail_for={"E2-MEE"})
        processor = PayrollBatchProcessor(sink=sink, on_status=listener)
        processor.run(_logs_for(2), _assignments(2), march_2025)

        assert seen["E1-MEE"] == [
            BatchItemStatus.PENDING, BatchItemStatus.PROCESSING, BatchItemStatus.SUCCEEDED,
        ]
        assert seen["E2-MEE"] == [
            BatchItemStatus.PENDING, BatchItemStatus.PROCESSING, BatchItemStatus.FAILED,
        ]
        assert processor.item_statuses == {
            "E1-MEE": BatchItemStatus.SUCCEEDED,
            "E2-MEE": BatchItemStatus.FAILED,
        }

    def test_sink_called_on_calling_thread(self, march_2025):
        sink = _RecordingSink()
        PayrollBatchProcessor(sink=sink).run(_logs_for(6), _assignments(6), march_2025)
        assert sink.threads == {threading.get_ident()}

    def test_timestamps_from_clock(self, march_2025, deterministic_clock):
        fixed = datetime(2025, 4, 1, 8, 0, tzinfo=timezone.utc)
        deterministic_clock.set_time(fixed)
        result = PayrollBatchProcessor(clock=deterministic_clock).run(
            _logs_for(1), _assignments(1), march_2025,
        )
        assert result.completed_at == fixed
        assert result.item_results[0].started_at == fixed

    def test_run_logs_completion(self, march_2025, captured_logs):
        result = PayrollBatchProcessor().run(_logs_for(1), _assignments(1), march_2025)
        completed = [r for r in captured_logs() if r["message"] == "payroll_batch_completed"]
        assert completed[0]["run_id"] == str(result.job_id)
        assert completed[0]["status"] == "completed"


# ===========================================================================
# Result data
# ===========================================================================


class TestResultData:
    def test_summary_fields(self, march_2025):
        result = PayrollBatchProcessor().run(_logs_for(1), _assignments(1), march_2025)
        data = result.item_results[0].result_data
        assert data["gross_pay"] == "80.00"
        assert data["end_month_payment"] == "40.00"
        assert data["item_count"] == 1
        assert "rate_unit_anomalies" not in data

    def test_rate_unit_anomalies_reported(self, march_2025, captured_logs):
        logs = [_log(_entry("E1", "MEE", _activity("80"), _activity("5", rate_unit="Kg", pay_code_id="SACK")))]
        result = PayrollBatchProcessor().run(logs, _assignments(1), march_2025)

        item = result.item_results[0]
        assert item.status == BatchItemStatus.SUCCEEDED
        assert item.result_data["rate_unit_anomalies"] == [
            {"work_log_id": "1", "pay_code_id": "SACK", "rate_unit": "Kg"},
        ]
        assert any(
            r["message"] == "rate_unit_anomalies_detected" and r["level"] == "WARNING"
            for r in captured_logs()
        )

    def test_rate_unit_anomalies_scoped_to_employee_job_period(self, march_2025):
        logs = [
            _log(_entry("E1", "KILANG", _activity("5", rate_unit="Kg"))),
            _log(_entry("E1", "MEE", _activity("5", rate_unit="Kg")), log_date=date(2025, 4, 2)),
        ]
        assert rate_unit_anomalies(logs, "E1", "MEE", march_2025) == ()


# ===========================================================================
# Employee-level extras
# ===========================================================================


class TestEmployeeExtras:
    def test_leave_applied_to_first_job_only(self, march_2025):
        logs = [_log(_entry("E1", "MEE", _activity("80")), _entry("E1", "KILANG", _activity("40")))]
        leave = {"E1": [LeaveRecord(date(2025, 3, 3), "sakit", Decimal("1"), Decimal("45"))]}
        result = PayrollBatchProcessor().run(
            logs,
            [PayrollAssignment("E1", "MEE"), PayrollAssignment("E1", "KILANG")],
            march_2025,
            leave_records_by_employee=leave,
        )
        mee, kilang = result.payrolls
        assert mee.gross_pay == Decimal("125.00")
        assert kilang.gross_pay == Decimal("40.00")

    def test_mid_month_advance(self, march_2025):
        result = PayrollBatchProcessor().run(
            _logs_for(1), _assignments(1), march_2025, mid_month_advances={"E1": Decimal("30")},
        )
        assert result.payrolls[0].end_month_payment == Decimal("50.00")


# ===========================================================================
# With the real repository
# ===========================================================================


class TestWithRepository:
    def test_payrolls_persisted(self, session, test_actor_id, march_2025):
        repository = PayrollRepository(session, test_actor_id, march_2025.label)
        result = PayrollBatchProcessor(sink=repository).run(_logs_for(3), _assignments(3), march_2025)
        assert result.status == BatchJobStatus.COMPLETED
        stored = repository.list_payrolls()
        assert [p.employee_id for p in stored] == ["E1", "E2", "E3"]
        assert all(p.gross_pay == Decimal("80.00") for p in stored)
