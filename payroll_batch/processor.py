"""
PayrollBatchProcessor -- chunked, concurrent payroll run with per-item isolation.

Contract:
    Computes one ``EmployeePayroll`` per ``PayrollAssignment`` for a pay
    period and hands each to a ``PayrollSink``.  Assignments are taken in
    chunks of ``config.batch_size``; the computations of a chunk run in
    parallel threads, the saves run one at a time on the calling thread.

Architecture: payroll_batch.  Imports from payroll_batch.domain, the payroll
    engines, models and config.  Nothing in kernel/, engines/ or modules/
    imports from payroll_batch.

Invariants enforced:
    - Item isolation: one item's failure (malformed data, engine error,
      sink error) becomes that item's FAILED result; the run continues.
    - The sink (and so any SQLAlchemy session behind it) is only called
      from the thread that called ``run()``.
    - All timestamps come from the injected Clock.
    - Status: all items succeeded -> COMPLETED, none -> FAILED, otherwise
      PARTIALLY_COMPLETED.  An empty run is COMPLETED.
"""

from __future__ import annotations

import contextvars
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol
from uuid import uuid4

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    PayrollAssignment,
    PayrollBatchResult,
)
from payroll_engines.assembler import process_employee_payroll
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.payroll.config import PayrollConfig
from payroll_modules.payroll.models import (
    EmployeePayroll,
    LeaveRecord,
    PayPeriod,
    WorkLog,
)

logger = get_logger("batch.processor")

StatusListener = Callable[[str, BatchItemStatus], None]


class PayrollSink(Protocol):
    """Destination for computed payrolls (e.g. ``PayrollRepository``)."""

    def save(self, payroll: EmployeePayroll) -> None:
        ...


@dataclass(frozen=True)
class _Computed:
    payroll: EmployeePayroll
    anomalies: tuple[dict[str, Any], ...]
    duration_ms: int


def rate_unit_anomalies(
    work_logs: Iterable[WorkLog],
    employee_id: str,
    job_id: str,
    period: PayPeriod,
) -> tuple[dict[str, Any], ...]:
    """Activities of the employee/job in ``period`` whose rate unit is unknown."""
    found = []
    for log in work_logs:
        if not period.contains(log.log_date):
            continue
        for entry in log.employee_entries:
            if entry.employee_id != employee_id or entry.job_id != job_id:
                continue
            for activity in entry.activities:
                if not activity.has_known_rate_unit:
                    found.append({
                        "work_log_id": str(log.id),
                        "pay_code_id": activity.pay_code_id,
                        "rate_unit": str(activity.rate_unit),
                    })
    return tuple(found)


def _error_code(exc: Exception) -> str:
    return getattr(exc, "code", None) or "UNHANDLED_EXCEPTION"


class PayrollBatchProcessor:
    """Payroll run engine with per-item failure isolation.

    Contract:
        - ``run()`` processes every assignment exactly once and returns a
          ``PayrollBatchResult`` with one ``BatchItemResult`` per
          assignment, in assignment order.
        - ``item_statuses`` exposes the live per-item status map.

    Non-goals:
        - Does NOT commit -- the sink's transaction belongs to the caller.
        - Does NOT retry failed items.
    """

    def __init__(
        self,
        config: PayrollConfig | None = None,
        sink: PayrollSink | None = None,
        clock: Clock | None = None,
        on_status: StatusListener | None = None,
    ):
        self._config = config or PayrollConfig.with_defaults()
        self._sink = sink
        self._clock = clock or SystemClock()
        self._on_status = on_status
        self._lock = threading.Lock()
        self._statuses: dict[str, BatchItemStatus] = {}

    @property
    def item_statuses(self) -> dict[str, BatchItemStatus]:
        with self._lock:
            return dict(self._statuses)

    def _set_status(self, item_key: str, status: BatchItemStatus) -> None:
        with self._lock:
            self._statuses[item_key] = status
        logger.debug(
            "batch_item_status_changed",
            extra={"item_key": item_key, "status": status.value},
        )
        if self._on_status is not None:
            self._on_status(item_key, status)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        work_logs: Sequence[WorkLog],
        assignments: Sequence[PayrollAssignment],
        period: PayPeriod,
        *,
        leave_records_by_employee: Mapping[str, Sequence[LeaveRecord]] | None = None,
        mid_month_advances: Mapping[str, Decimal] | None = None,
    ) -> PayrollBatchResult:
        """Compute and save a payroll for every assignment.

        Leave records and the mid-month advance of an employee apply to
        that employee's first assignment only, so they are counted once
        when the employee works several jobs.
        """
        job_id = uuid4()
        started_at = self._clock.now()
        start_time = time.monotonic()
        work_logs = tuple(work_logs)
        leave_records_by_employee = leave_records_by_employee or {}
        mid_month_advances = mid_month_advances or {}

        with self._lock:
            self._statuses = {}
        for assignment in assignments:
            self._set_status(assignment.item_key, BatchItemStatus.PENDING)

        with LogContext.bind(run_id=str(job_id)):
            logger.info(
                "payroll_batch_started",
                extra={
                    "period": period.label,
                    "total_items": len(assignments),
                    "batch_size": self._config.batch_size,
                },
            )

            seen_employees: set[str] = set()
            extras: list[tuple[Sequence[LeaveRecord], Decimal | None]] = []
            for assignment in assignments:
                if assignment.employee_id in seen_employees:
                    extras.append(((), None))
                else:
                    seen_employees.add(assignment.employee_id)
                    extras.append((
                        leave_records_by_employee.get(assignment.employee_id, ()),
                        mid_month_advances.get(assignment.employee_id),
                    ))

            item_results: list[BatchItemResult] = []
            payrolls: list[EmployeePayroll] = []
            batch_size = self._config.batch_size

            with ThreadPoolExecutor(
                max_workers=self._config.effective_max_workers,
                thread_name_prefix="payroll-batch",
            ) as pool:
                for offset in range(0, len(assignments), batch_size):
                    chunk = assignments[offset:offset + batch_size]
                    futures: list[tuple[Future, Any]] = []
                    for index, assignment in enumerate(chunk, start=offset):
                        self._set_status(assignment.item_key, BatchItemStatus.PROCESSING)
                        leave_records, advance = extras[index]
                        ctx = contextvars.copy_context()
                        future = pool.submit(
                            ctx.run,
                            self._compute,
                            work_logs,
                            assignment,
                            period,
                            leave_records,
                            advance,
                        )
                        futures.append((future, self._clock.now()))

                    for index, (assignment, (future, item_started_at)) in enumerate(
                        zip(chunk, futures), start=offset,
                    ):
                        result, payroll = self._finish_item(
                            index, assignment, future, item_started_at,
                        )
                        item_results.append(result)
                        if payroll is not None:
                            payrolls.append(payroll)

            succeeded = sum(
                1 for r in item_results if r.status == BatchItemStatus.SUCCEEDED
            )
            failed = len(item_results) - succeeded
            if failed == 0:
                status = BatchJobStatus.COMPLETED
            elif succeeded == 0:
                status = BatchJobStatus.FAILED
            else:
                status = BatchJobStatus.PARTIALLY_COMPLETED

            completed_at = self._clock.now()
            total_duration = int((time.monotonic() - start_time) * 1000)

            log = logger.warning if failed else logger.info
            log(
                "payroll_batch_completed",
                extra={
                    "period": period.label,
                    "status": status.value,
                    "succeeded": succeeded,
                    "failed": failed,
                    "duration_ms": total_duration,
                },
            )

        return PayrollBatchResult(
            job_id=job_id,
            status=status,
            period_label=period.label,
            total_items=len(assignments),
            succeeded=succeeded,
            failed=failed,
            item_results=tuple(item_results),
            payrolls=tuple(payrolls),
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=total_duration,
        )

    # -------------------------------------------------------------------------
    # Per item
    # -------------------------------------------------------------------------

    def _compute(
        self,
        work_logs: Sequence[WorkLog],
        assignment: PayrollAssignment,
        period: PayPeriod,
        leave_records: Sequence[LeaveRecord],
        mid_month_advance: Decimal | None,
    ) -> _Computed:
        """Worker-thread side: pure computation only."""
        t0 = time.monotonic()
        with LogContext.bind(
            employee_id=assignment.employee_id, job_id=assignment.job_type,
        ):
            payroll = process_employee_payroll(
                work_logs,
                assignment.employee_id,
                assignment.job_type,
                assignment.section or self._config.default_section,
                period,
                leave_records=leave_records,
                end_month_divisor=self._config.end_month_divisor,
                mid_month_advance=mid_month_advance,
                leave_pay_code_prefix=self._config.leave_pay_code_prefix,
            )
            anomalies = rate_unit_anomalies(
                work_logs, assignment.employee_id, assignment.job_type, period,
            )
        return _Computed(
            payroll=payroll,
            anomalies=anomalies,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

    def _finish_item(
        self,
        index: int,
        assignment: PayrollAssignment,
        future: Future,
        item_started_at,
    ) -> tuple[BatchItemResult, EmployeePayroll | None]:
        """Calling-thread side: collect the computation, save, record status."""
        item_key = assignment.item_key
        t0 = time.monotonic()
        try:
            computed: _Computed = future.result()
            if computed.anomalies:
                logger.warning(
                    "rate_unit_anomalies_detected",
                    extra={
                        "item_key": item_key,
                        "anomaly_count": len(computed.anomalies),
                        "rate_units": sorted({a["rate_unit"] for a in computed.anomalies}),
                    },
                )
            if self._sink is not None:
                self._sink.save(computed.payroll)
        except Exception as exc:
            self._set_status(item_key, BatchItemStatus.FAILED)
            logger.error(
                "payroll_batch_item_failed",
                extra={"item_key": item_key, "error_code": _error_code(exc)},
                exc_info=True,
            )
            return BatchItemResult(
                item_index=index,
                item_key=item_key,
                status=BatchItemStatus.FAILED,
                error_code=_error_code(exc),
                error_message=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
                started_at=item_started_at,
                completed_at=self._clock.now(),
            ), None

        self._set_status(item_key, BatchItemStatus.SUCCEEDED)
        payroll = computed.payroll
        result_data: dict[str, Any] = {
            "employee_id": payroll.employee_id,
            "job_type": payroll.job_type,
            "item_count": len(payroll.items),
            "gross_pay": str(payroll.gross_pay),
            "net_pay": str(payroll.net_pay),
            "end_month_payment": str(payroll.end_month_payment),
        }
        if computed.anomalies:
            result_data["rate_unit_anomalies"] = list(computed.anomalies)
        return BatchItemResult(
            item_index=index,
            item_key=item_key,
            status=BatchItemStatus.SUCCEEDED,
            result_data=result_data,
            duration_ms=computed.duration_ms + int((time.monotonic() - t0) * 1000),
            started_at=item_started_at,
            completed_at=self._clock.now(),
        ), payroll
