"""
Manual payroll items (``payroll_engines.manual_items``).

Ad hoc lines (allowances, one-off bonuses, corrections) added to a payroll
after aggregation.  The amount is always computed by the rate calculator;
the caller supplies only rate, quantity and unit.

Both operations return a new tuple and leave the input untouched.
"""

from __future__ import annotations

from collections.abc import Sequence

from payroll_engines.rate_calculator import calculate_amount
from payroll_kernel.domain.values import to_decimal
from payroll_kernel.exceptions import PayrollItemNotManualError
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import ManualItemSpec, PayrollItem

logger = get_logger("engines.manual_items")


def add_manual_item(
    existing_items: Sequence[PayrollItem],
    spec: ManualItemSpec,
) -> tuple[PayrollItem, ...]:
    """
    Append a manual item computed from ``spec``.

    A pay code that already appears among the aggregated items produces a
    second, separate line.
    """
    rate = to_decimal(spec.rate)
    quantity = to_decimal(spec.quantity)
    item = PayrollItem(
        pay_code_id=spec.pay_code_id,
        description=spec.description,
        rate=rate,
        rate_unit=spec.rate_unit,
        quantity=quantity,
        amount=calculate_amount(rate, quantity, spec.rate_unit),
        is_manual=True,
        pay_type=spec.pay_type,
    )
    logger.info(
        "manual_item_added",
        extra={
            "pay_code_id": item.pay_code_id,
            "rate_unit": item.rate_unit,
            "amount": str(item.amount),
        },
    )
    return (*existing_items, item)


def remove_manual_item(
    existing_items: Sequence[PayrollItem],
    index: int,
) -> tuple[PayrollItem, ...]:
    """
    Remove the manual item at ``index``.

    Raises:
        IndexError: ``index`` is out of range.
        PayrollItemNotManualError: the item was produced by aggregation.
    """
    if not 0 <= index < len(existing_items):
        raise IndexError(f"payroll item index {index} out of range")
    item = existing_items[index]
    if not item.is_manual:
        raise PayrollItemNotManualError(index, item.pay_code_id)

    logger.info(
        "manual_item_removed",
        extra={"pay_code_id": item.pay_code_id, "index": index},
    )
    return tuple(existing_items[:index]) + tuple(existing_items[index + 1:])
