"""
Pure domain layer.

Value helpers and the clock abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock, the one sanctioned time boundary)
"""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.values import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    round_money,
    sum_money,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MONEY_DECIMAL_PLACES",
    "ZERO",
    "round_money",
    "sum_money",
    "to_decimal",
]
