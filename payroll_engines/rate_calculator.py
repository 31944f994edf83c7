"""
Rate Calculator (``payroll_engines.rate_calculator``).

Responsibility
--------------
Turn (rate, quantity, rate unit) into a monetary amount.  This is the
leaf of the payroll engine: every amount that later flows through
aggregation and totals was produced (and rounded) here exactly once.

Architecture position
---------------------
**Engines layer** -- pure function.  ZERO I/O, ZERO clock reads.

Invariants enforced
-------------------
* ``Hour``/``Day``/``Bag``/``Trip``: ``rate * quantity``.
* ``Percent``: ``rate * quantity / 100`` (quantity is the base amount the
  percentage applies to, e.g. a sales value).
* ``Fixed``: ``rate``; quantity ignored.
* Result rounded once to 0.01 (ROUND_HALF_UP).
* Every ``RateUnit`` member has a formula; checked at import so a new unit
  cannot silently fall through to the zero default.

Failure modes
-------------
* Unrecognized rate unit -> ``Decimal("0.00")`` plus a
  ``rate_unit_unrecognized`` warning.  Never raises for it.
* Non-numeric rate/quantity -> ``ValueError`` from ``to_decimal``
  (programming error; upstream parsing already produced Decimals).
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.values import ZERO, round_money, to_decimal
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import DayType, RateUnit

logger = get_logger("engines.rate_calculator")

_HUNDRED = Decimal("100")


def _per_unit(rate: Decimal, quantity: Decimal) -> Decimal:
    return rate * quantity


def _percent(rate: Decimal, quantity: Decimal) -> Decimal:
    return rate * quantity / _HUNDRED


def _fixed(rate: Decimal, quantity: Decimal) -> Decimal:
    return rate


_FORMULAS: dict[RateUnit, Callable[[Decimal, Decimal], Decimal]] = {
    RateUnit.HOUR: _per_unit,
    RateUnit.DAY: _per_unit,
    RateUnit.BAG: _per_unit,
    RateUnit.TRIP: _per_unit,
    RateUnit.PERCENT: _percent,
    RateUnit.FIXED: _fixed,
}

_missing = set(RateUnit) - _FORMULAS.keys()
if _missing:
    raise ImportError(
        f"No amount formula for rate unit(s): {sorted(u.value for u in _missing)}"
    )


def calculate_amount(
    rate: Any,
    quantity: Any,
    rate_unit: RateUnit | str,
    day_type: DayType | str = DayType.BIASA,
) -> Decimal:
    """
    Calculate the amount for a rate applied to a quantity.

    ``day_type`` is accepted for interface compatibility with the logging
    workflows (which pick the Biasa/Ahad/Umum rate tier before the rate
    reaches here) and does not change the result.

    Preconditions:
        ``rate`` and ``quantity`` are numbers (Decimal, int, str or float).
        Zero and negative values are computed mechanically.
    Postconditions:
        Returns a ``Decimal`` quantized to 0.01.
    """
    unit = RateUnit.coerce(rate_unit)
    if unit is None:
        logger.warning(
            "rate_unit_unrecognized",
            extra={"rate_unit": str(rate_unit), "rate": str(rate)},
        )
        return round_money(ZERO)

    return round_money(_FORMULAS[unit](to_decimal(rate), to_decimal(quantity)))
