"""
Payroll Assembler (``payroll_engines.assembler``).

Responsibility
--------------
Produce the terminal ``EmployeePayroll`` for one employee and job from the
aggregated items: totals, the end-month payment split, leave pay lines,
multi-job combination, and the deduction hook.

Architecture position
---------------------
**Engines layer** -- pure functions.  ZERO I/O.  Returns new frozen
payrolls; never mutates an input.

Invariants enforced
-------------------
* ``gross_pay == round_money(sum(item.amount for item in items))``.
* Before deductions ``net_pay == gross_pay``; after them
  ``net_pay == round_money(gross_pay - sum(employee_amount))``.
* ``end_month_payment == round_money(net_pay / divisor)``, or
  ``round_money(net_pay - mid_month_advance)`` when an advance was paid.
* The advance is stored on the payroll, so every recomputation keeps
  using it.

Failure modes
-------------
* ``ValueError`` for a divisor ``<= 0`` (programming error).
* ``PayrollCombinationError`` when combining no payrolls or payrolls of
  different employees.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal

from payroll_engines.aggregation import aggregate_work_logs
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO, round_money, sum_money, to_decimal
from payroll_kernel.exceptions import PayrollCombinationError
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import (
    EmployeePayroll,
    LeaveRecord,
    PayPeriod,
    PayrollDeduction,
    PayrollItem,
    PayType,
    RateUnit,
    WorkLog,
)

logger = get_logger("engines.assembler")

DEFAULT_END_MONTH_DIVISOR = Decimal("2")


def calculate_totals(items: Iterable[PayrollItem]) -> tuple[Decimal, Decimal]:
    """Return ``(gross_pay, net_pay)``; net equals gross before deductions."""
    gross = round_money(sum_money(item.amount for item in items))
    return gross, gross


def _advance(value: Decimal | int | str | None) -> Decimal | None:
    return to_decimal(value) if value is not None else None


def _end_month_payment(
    net_pay: Decimal,
    end_month_divisor: Decimal | int | str,
    mid_month_advance: Decimal | None,
) -> Decimal:
    divisor = to_decimal(end_month_divisor)
    if divisor <= 0:
        raise ValueError(f"end_month_divisor must be positive, got {divisor}")
    if mid_month_advance is not None:
        return round_money(net_pay - mid_month_advance)
    return round_money(net_pay / divisor)


def leave_items(
    leave_records: Iterable[LeaveRecord],
    period: PayPeriod,
    job_type: str | None = None,
    pay_code_prefix: str = "CUTI",
) -> tuple[PayrollItem, ...]:
    """
    Turn the leave records inside ``period`` into payroll lines.

    Records whose leave types normalise to the same code (case and
    surrounding whitespace ignored) are merged into one line
    (``CUTI_<LEAVE_TYPE>``, unit ``Day``, pay type ``Base``).  The first
    label seen is used for the description.
    """
    labels: dict[str, str] = {}
    days: dict[str, Decimal] = {}
    amounts: dict[str, Decimal] = {}
    for record in leave_records:
        if not period.contains(record.leave_date):
            continue
        label = record.leave_type.strip()
        code = label.upper().replace(" ", "_")
        labels.setdefault(code, label)
        days[code] = days.get(code, ZERO) + record.days_taken
        amounts[code] = amounts.get(code, ZERO) + record.amount_paid

    items = []
    for code, days_taken in days.items():
        amount = amounts[code]
        items.append(
            PayrollItem(
                pay_code_id=f"{pay_code_prefix}_{code}",
                description=f"Cuti {labels[code]}",
                rate=round_money(amount / days_taken) if days_taken else amount,
                rate_unit=RateUnit.DAY,
                quantity=days_taken,
                amount=amount,
                is_manual=False,
                pay_type=PayType.BASE,
                job_type=job_type,
            )
        )
    return tuple(items)


@traced_engine(
    "payroll_assembler",
    "1.0",
    fingerprint_fields=("employee_id", "job_type", "section"),
)
def process_employee_payroll(
    work_logs: Iterable[WorkLog],
    employee_id: str,
    job_type: str,
    section: str,
    period: PayPeriod,
    *,
    leave_records: Iterable[LeaveRecord] = (),
    end_month_divisor: Decimal | int | str = DEFAULT_END_MONTH_DIVISOR,
    mid_month_advance: Decimal | None = None,
    leave_pay_code_prefix: str = "CUTI",
) -> EmployeePayroll:
    """
    Compute one employee's payroll for one job over ``period``.

    Preconditions:
        ``work_logs`` are already loaded; this function performs no I/O.
    Postconditions:
        ``gross_pay`` equals the rounded sum of the returned item amounts,
        leave lines included.  No matching logs yields zero totals.

    Raises:
        ValueError: ``end_month_divisor <= 0``.
    """
    items = aggregate_work_logs(
        work_logs, employee_id, job_type, period.start_date, period.end_date
    )
    items += leave_items(
        leave_records, period, job_type=job_type, pay_code_prefix=leave_pay_code_prefix
    )
    advance = _advance(mid_month_advance)
    gross, net = calculate_totals(items)
    payroll = EmployeePayroll(
        employee_id=employee_id,
        job_type=job_type,
        section=section,
        items=items,
        gross_pay=gross,
        net_pay=net,
        end_month_payment=_end_month_payment(net, end_month_divisor, advance),
        mid_month_advance=advance,
    )

    logger.info(
        "employee_payroll_processed",
        extra={
            "employee_id": employee_id,
            "job_id": job_type,
            "period": period.label,
            "item_count": len(items),
            "gross_pay": str(gross),
        },
    )
    return payroll


def with_items(
    payroll: EmployeePayroll,
    items: Iterable[PayrollItem],
    *,
    end_month_divisor: Decimal | int | str = DEFAULT_END_MONTH_DIVISOR,
) -> EmployeePayroll:
    """Return a copy of ``payroll`` with ``items`` and recomputed totals.

    The mid-month advance is kept.  Deductions are dropped: they were
    computed on the old gross, so the payroll must be finalized again.
    """
    items = tuple(items)
    gross, net = calculate_totals(items)
    return replace(
        payroll,
        items=items,
        gross_pay=gross,
        net_pay=net,
        end_month_payment=_end_month_payment(
            net, end_month_divisor, payroll.mid_month_advance
        ),
        deductions=(),
    )


def combine_employee_payrolls(
    payrolls: Sequence[EmployeePayroll],
    *,
    end_month_divisor: Decimal | int | str = DEFAULT_END_MONTH_DIVISOR,
) -> EmployeePayroll:
    """
    Merge one employee's per-job payrolls into a single payroll.

    Items keep their order and their ``job_type``.  The combined
    ``job_type`` is the sorted unique job ids joined with ``", "``; the
    section is taken from the first payroll.  Mid-month advances are
    summed.  Deductions are not carried over (they are computed on the
    combined figures).

    Raises:
        PayrollCombinationError: Empty input or mixed employee ids.
    """
    if not payrolls:
        raise PayrollCombinationError("no payrolls given")
    employee_ids = {p.employee_id for p in payrolls}
    if len(employee_ids) > 1:
        raise PayrollCombinationError(
            f"payrolls belong to different employees: {sorted(employee_ids)}"
        )

    primary = payrolls[0]
    items = tuple(item for p in payrolls for item in p.items)
    gross, net = calculate_totals(items)
    job_ids = sorted({j.strip() for p in payrolls for j in p.job_type.split(",")})
    advances = [p.mid_month_advance for p in payrolls if p.mid_month_advance is not None]
    advance = sum_money(advances) if advances else None

    combined = EmployeePayroll(
        employee_id=primary.employee_id,
        job_type=", ".join(job_ids),
        section=primary.section,
        items=items,
        gross_pay=gross,
        net_pay=net,
        end_month_payment=_end_month_payment(net, end_month_divisor, advance),
        mid_month_advance=advance,
    )
    logger.info(
        "employee_payrolls_combined",
        extra={
            "employee_id": primary.employee_id,
            "job_count": len(job_ids),
            "gross_pay": str(gross),
        },
    )
    return combined


def apply_deductions(
    payroll: EmployeePayroll,
    deductions: Iterable[PayrollDeduction],
    *,
    end_month_divisor: Decimal | int | str = DEFAULT_END_MONTH_DIVISOR,
    mid_month_advance: Decimal | None = None,
) -> EmployeePayroll:
    """Attach deductions and recompute net pay and the end-month payment.

    ``mid_month_advance`` replaces the stored advance when given.
    """
    deductions = tuple(deductions)
    advance = (
        _advance(mid_month_advance)
        if mid_month_advance is not None
        else payroll.mid_month_advance
    )
    net = round_money(
        payroll.gross_pay - sum_money(d.employee_amount for d in deductions)
    )
    return replace(
        payroll,
        deductions=deductions,
        net_pay=net,
        end_month_payment=_end_month_payment(net, end_month_divisor, advance),
        mid_month_advance=advance,
    )
