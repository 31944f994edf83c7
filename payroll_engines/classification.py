"""
Pay-type classification (``payroll_engines.classification``).

Groups payroll items into Base / Tambahan / Overtime and derives the wage
bases handed to the statutory deduction module.  Overtime is excluded from
the contribution base (provident fund); the total covers every item.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from payroll_kernel.domain.values import round_money, sum_money
from payroll_modules.payroll.models import PayrollItem, PayType, WageBases

_WORD = re.compile(r"[a-z0-9]+")
_OVERTIME_TOKENS = frozenset({"overtime", "ot"})


def classify_item(item: PayrollItem) -> PayType:
    """Return the item's pay type, inferring one from its description if unset."""
    if item.pay_type is not None:
        return PayType(item.pay_type)

    description = item.description.lower()
    if _OVERTIME_TOKENS & set(_WORD.findall(description)):
        return PayType.OVERTIME
    if item.is_manual or "tambahan" in description:
        return PayType.TAMBAHAN
    return PayType.BASE


def group_items_by_pay_type(
    items: Iterable[PayrollItem],
) -> dict[PayType, tuple[PayrollItem, ...]]:
    grouped: dict[PayType, list[PayrollItem]] = {pay_type: [] for pay_type in PayType}
    for item in items:
        grouped[classify_item(item)].append(item)
    return {pay_type: tuple(group) for pay_type, group in grouped.items()}


def wage_bases(items: Iterable[PayrollItem]) -> WageBases:
    grouped = group_items_by_pay_type(items)
    contribution = sum_money(
        item.amount
        for pay_type in (PayType.BASE, PayType.TAMBAHAN)
        for item in grouped[pay_type]
    )
    total = contribution + sum_money(item.amount for item in grouped[PayType.OVERTIME])
    return WageBases(
        contribution_base=round_money(contribution),
        total=round_money(total),
    )
