"""
Values -- Decimal money helpers for payroll computation.

Responsibility:
    The single sanctioned rounding rule for monetary amounts, plus the
    numeric coercion used at every boundary where upstream data (JSON
    numbers, numeric strings, database values) enters the engine.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary amounts are ``Decimal``; floats are converted through
      ``str()`` so binary representation noise never enters a sum.
    - Rounding is ROUND_HALF_UP to 2 decimal places (currency minor unit).

Failure modes:
    - ``to_decimal`` raises ``ValueError`` for values that are not numbers
      or numeric strings (including NaN and infinity).
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to ``Decimal``.

    Preconditions:
        ``value`` is a ``Decimal``, ``int``, ``float`` or numeric ``str``.
        ``bool`` is rejected (it is an ``int`` subclass but never a number
        in payroll data).
    Postconditions:
        Returns a finite ``Decimal``.  Floats are converted via ``str()``
        so ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        ValueError: If the value cannot be interpreted as a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Expected a number, got bool {value!r}")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    else:
        raise ValueError(
            f"Expected a number, got {type(value).__name__} {value!r}"
        )
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """
    Round a monetary value to currency minor-unit precision.

    This is the ONLY rounding function for payroll amounts.  It is applied
    once where an amount is produced (rate calculation) and once where a
    total is produced (gross/net); never to intermediate sums.

    Postconditions:
        Returns ``value`` quantized to 0.01 using ROUND_HALF_UP.
    """
    return value.quantize(_MONEY_QUANTUM, rounding=DEFAULT_ROUNDING)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    """Sum Decimals exactly (no rounding); empty input sums to zero."""
    return sum(values, ZERO)
