"""
Activity Aggregator (``payroll_engines.aggregation``).

Responsibility
--------------
Collapse the priced activities of an employee's work logs for one job and
one pay period into one ``PayrollItem`` per pay code.

Architecture position
---------------------
**Engines layer** -- pure functions.  ZERO I/O.  The work logs are
pre-fetched by the caller and passed in.

Invariants enforced
-------------------
* A log belongs to the period iff ``period_start <= log_date < period_end``.
* Only entries matching BOTH the employee id and the job id contribute;
  the same employee working another job is a separate payroll.
* An item's amount is the exact sum of the ``calculated_amount`` values
  captured when the work was logged.  No recomputation, no re-rounding.
* The first occurrence of a pay code seeds its description, rate, rate
  unit and pay type.  Output order is first-occurrence order.

Failure modes
-------------
* None raised.  No matching logs yields an empty tuple.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import Activity, PayrollItem, RateUnit, WorkLog

logger = get_logger("engines.aggregation")

_ONE = Decimal("1")

_HOURS_UNITS = frozenset({RateUnit.HOUR})
_PRODUCED_UNITS = frozenset(
    {RateUnit.BAG, RateUnit.TRIP, RateUnit.DAY, RateUnit.PERCENT}
)


def quantity_for(activity: Activity) -> Decimal:
    """Return the unit-appropriate quantity for one activity."""
    unit = activity.rate_unit
    if unit in _HOURS_UNITS:
        return activity.hours_applied or ZERO
    if unit in _PRODUCED_UNITS:
        return activity.units_produced or ZERO
    if unit == RateUnit.FIXED:
        return _ONE
    return ZERO


@dataclass
class _Accumulator:
    seed: Activity
    quantity: Decimal = ZERO
    amount: Decimal = ZERO

    def add(self, activity: Activity) -> None:
        self.quantity += quantity_for(activity)
        self.amount += activity.calculated_amount

    def to_item(self, job_type: str | None) -> PayrollItem:
        return PayrollItem(
            pay_code_id=self.seed.pay_code_id,
            description=self.seed.description,
            rate=self.seed.rate_used,
            rate_unit=self.seed.rate_unit,
            quantity=self.quantity,
            amount=self.amount,
            is_manual=False,
            pay_type=self.seed.pay_type,
            job_type=job_type,
        )


def fold_activities(
    activities: Iterable[Activity],
    job_type: str | None = None,
) -> Mapping[str, PayrollItem]:
    """
    Fold activities into one payroll item per pay code.

    Returns a read-only mapping ``pay_code_id -> PayrollItem`` in
    first-occurrence order.
    """
    accumulators: dict[str, _Accumulator] = {}
    for activity in activities:
        acc = accumulators.get(activity.pay_code_id)
        if acc is None:
            acc = accumulators[activity.pay_code_id] = _Accumulator(seed=activity)
        elif (
            activity.rate_used != acc.seed.rate_used
            or activity.description != acc.seed.description
        ):
            logger.debug(
                "pay_code_attributes_diverged",
                extra={
                    "pay_code_id": activity.pay_code_id,
                    "seed_rate": str(acc.seed.rate_used),
                    "rate": str(activity.rate_used),
                    "seed_description": acc.seed.description,
                    "description": activity.description,
                },
            )
        acc.add(activity)

    return MappingProxyType(
        {code: acc.to_item(job_type) for code, acc in accumulators.items()}
    )


def _matching_activities(
    work_logs: Iterable[WorkLog],
    employee_id: str,
    job_id: str,
    period_start: date,
    period_end: date,
) -> Iterable[Activity]:
    for log in work_logs:
        if not (period_start <= log.log_date < period_end):
            continue
        for entry in log.employee_entries:
            if entry.employee_id == employee_id and entry.job_id == job_id:
                yield from entry.activities


@traced_engine(
    "payroll_aggregation",
    "1.0",
    fingerprint_fields=("employee_id", "job_id", "period_start", "period_end"),
)
def aggregate_work_logs(
    work_logs: Iterable[WorkLog],
    employee_id: str,
    job_id: str,
    period_start: date,
    period_end: date,
) -> tuple[PayrollItem, ...]:
    """
    Aggregate one employee's activities for one job over ``[start, end)``.

    Returns:
        Payroll items (``is_manual=False``, ``job_type=job_id``) in
        first-occurrence order of their pay codes.
    """
    folded = fold_activities(
        _matching_activities(work_logs, employee_id, job_id, period_start, period_end),
        job_type=job_id,
    )
    items = tuple(folded.values())

    logger.debug(
        "work_logs_aggregated",
        extra={
            "employee_id": employee_id,
            "job_id": job_id,
            "item_count": len(items),
        },
    )
    return items
