"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the pure payroll calculation
    functions.  This is the canonical import surface for higher layers
    (payroll_modules.payroll.service, payroll_batch).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import payroll_kernel (domain values, exceptions, logging) and the
    payroll domain models.  MUST NOT import SQLAlchemy, payroll_batch, or
    the payroll ORM/repository/service modules.

Invariants enforced:
    - Purity: engines NEVER read the clock.  Periods are passed in.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from payroll_engines import calculate_amount, process_employee_payroll
"""

from payroll_engines.aggregation import (
    aggregate_work_logs,
    fold_activities,
    quantity_for,
)
from payroll_engines.assembler import (
    DEFAULT_END_MONTH_DIVISOR,
    apply_deductions,
    calculate_totals,
    combine_employee_payrolls,
    leave_items,
    process_employee_payroll,
    with_items,
)
from payroll_engines.classification import (
    classify_item,
    group_items_by_pay_type,
    wage_bases,
)
from payroll_engines.manual_items import add_manual_item, remove_manual_item
from payroll_engines.rate_calculator import calculate_amount
from payroll_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "DEFAULT_END_MONTH_DIVISOR",
    "add_manual_item",
    "aggregate_work_logs",
    "apply_deductions",
    "calculate_amount",
    "calculate_totals",
    "classify_item",
    "combine_employee_payrolls",
    "compute_input_fingerprint",
    "fold_activities",
    "group_items_by_pay_type",
    "leave_items",
    "process_employee_payroll",
    "quantity_for",
    "remove_manual_item",
    "traced_engine",
    "wage_bases",
    "with_items",
]
