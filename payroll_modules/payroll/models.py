"""
Payroll Domain Models (``payroll_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of the payroll
engine: work logs with their employee entries and priced activities,
leave records, pay periods, aggregated payroll items, manual item specs,
deduction results, and the terminal ``EmployeePayroll``.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``payroll_engines`` and returned to callers.  No dependency on SQLAlchemy,
services, or engines.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary and quantity fields use ``Decimal`` -- NEVER ``float``.
* ``Activity.rate_used`` is the rate captured when the work was logged;
  nothing here (or downstream) looks it up again.
* ``PayPeriod`` is a non-empty half-open range ``[start_date, end_date)``.

Failure modes
-------------
* ``WorkLog.from_dict`` / ``LeaveRecord.from_dict`` raise
  ``MalformedWorkLogError`` naming the offending field.
* ``PayPeriod`` construction with ``start_date >= end_date`` raises
  ``InvalidPeriodError``.
* An unrecognized rate unit is NOT an error: ``Activity.rate_unit`` keeps
  the raw string and the engines fail soft on it.
"""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_kernel.domain.values import ZERO, sum_money, to_decimal
from payroll_kernel.exceptions import InvalidPeriodError, MalformedWorkLogError
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.models")


class DayType(str, Enum):
    """Classification of a work date (selects the rate tier upstream)."""
    BIASA = "Biasa"  # normal day
    AHAD = "Ahad"  # Sunday
    UMUM = "Umum"  # public holiday


class PayType(str, Enum):
    """Coarse classification of a payroll item."""
    BASE = "Base"
    TAMBAHAN = "Tambahan"  # supplemental / ad hoc
    OVERTIME = "Overtime"


class RateUnit(str, Enum):
    """Unit a pay code's rate is denominated in. Closed set."""
    HOUR = "Hour"
    DAY = "Day"
    BAG = "Bag"
    TRIP = "Trip"
    PERCENT = "Percent"
    FIXED = "Fixed"

    @classmethod
    def coerce(cls, value: Any) -> RateUnit | None:
        """Return the member for ``value``, or None if it is not a known unit."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Boundary parsing helpers
# ---------------------------------------------------------------------------


def _require(data: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise MalformedWorkLogError(f"{path}.{key}", "missing")
    return data[key]


def _decimal(data: Mapping[str, Any], key: str, path: str) -> Decimal:
    try:
        return to_decimal(_require(data, key, path))
    except ValueError as exc:
        raise MalformedWorkLogError(f"{path}.{key}", str(exc)) from None


def _optional_decimal(data: Mapping[str, Any], key: str, path: str) -> Decimal | None:
    if data.get(key) is None:
        return None
    return _decimal(data, key, path)


def _parse_date(value: Any, path: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            # Accepts both "2025-03-05" and "2025-03-05T00:00:00.000Z"
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise MalformedWorkLogError(path, f"not a date: {value!r}")


def _parse_enum(enum_cls: type[Enum], value: Any, path: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise MalformedWorkLogError(
            path, f"{value!r} is not one of {allowed}"
        ) from None


# ---------------------------------------------------------------------------
# Work-log input records (owned upstream, read-only here)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Activity:
    """One priced unit of work inside an employee entry."""
    pay_code_id: str
    description: str
    pay_type: PayType
    rate_unit: RateUnit | str
    rate_used: Decimal
    calculated_amount: Decimal
    hours_applied: Decimal | None = None
    units_produced: Decimal | None = None
    source: str | None = None  # "job" or "employee" pay-code origin

    def __post_init__(self):
        unit = RateUnit.coerce(self.rate_unit)
        if unit is not None:
            object.__setattr__(self, "rate_unit", unit)
        else:
            logger.debug(
                "activity_rate_unit_unrecognized",
                extra={
                    "pay_code_id": self.pay_code_id,
                    "rate_unit": str(self.rate_unit),
                },
            )
        if not isinstance(self.pay_type, PayType):
            object.__setattr__(self, "pay_type", PayType(self.pay_type))

    @property
    def has_known_rate_unit(self) -> bool:
        return isinstance(self.rate_unit, RateUnit)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: str = "activity") -> Activity:
        """Parse one upstream activity record."""
        return cls(
            pay_code_id=str(_require(data, "pay_code_id", path)),
            description=str(data.get("description") or ""),
            pay_type=_parse_enum(
                PayType, _require(data, "pay_type", path), f"{path}.pay_type"
            ),
            rate_unit=str(_require(data, "rate_unit", path)),
            rate_used=_decimal(data, "rate_used", path),
            calculated_amount=_decimal(data, "calculated_amount", path),
            hours_applied=_optional_decimal(data, "hours_applied", path),
            units_produced=_optional_decimal(data, "units_produced", path),
            source=data.get("source"),
        )


@dataclass(frozen=True)
class EmployeeEntry:
    """One employee's participation in a work log."""
    employee_id: str
    job_id: str
    total_hours: Decimal = ZERO
    activities: tuple[Activity, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: str = "entry") -> EmployeeEntry:
        activities = data.get("activities") or ()
        return cls(
            employee_id=str(_require(data, "employee_id", path)),
            job_id=str(_require(data, "job_id", path)),
            total_hours=_optional_decimal(data, "total_hours", path) or ZERO,
            activities=tuple(
                Activity.from_dict(a, f"{path}.activities[{i}]")
                for i, a in enumerate(activities)
            ),
        )


@dataclass(frozen=True)
class WorkLog:
    """One recorded work session (daily or monthly) for one or more employees."""
    id: int | str
    log_date: date
    shift: int
    day_type: DayType
    section: str
    employee_entries: tuple[EmployeeEntry, ...] = field(default_factory=tuple)
    status: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkLog:
        """
        Parse an upstream work-log record.

        Numeric fields may arrive as numbers or numeric strings (database
        NUMERIC columns serialize as strings).  A missing
        ``employee_entries`` list is treated as empty.

        Raises:
            MalformedWorkLogError: Missing required field or bad value.
        """
        log_id = _require(data, "id", "work_log")
        path = f"work_log[{log_id}]"
        entries = data.get("employee_entries") or ()
        try:
            shift = int(data.get("shift") or 1)
        except (TypeError, ValueError):
            raise MalformedWorkLogError(
                f"{path}.shift", f"not an integer: {data.get('shift')!r}"
            ) from None
        return cls(
            id=log_id,
            log_date=_parse_date(_require(data, "log_date", path), f"{path}.log_date"),
            shift=shift,
            day_type=_parse_enum(
                DayType, data.get("day_type") or DayType.BIASA.value, f"{path}.day_type"
            ),
            section=str(data.get("section") or ""),
            employee_entries=tuple(
                EmployeeEntry.from_dict(e, f"{path}.employee_entries[{i}]")
                for i, e in enumerate(entries)
            ),
            status=data.get("status"),
        )


@dataclass(frozen=True)
class LeaveRecord:
    """Approved paid leave taken by an employee (counts toward gross pay)."""
    leave_date: date
    leave_type: str
    days_taken: Decimal
    amount_paid: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LeaveRecord:
        path = "leave_record"
        raw_date = data.get("leave_date", data.get("date"))
        if raw_date is None:
            raise MalformedWorkLogError(f"{path}.leave_date", "missing")
        return cls(
            leave_date=_parse_date(raw_date, f"{path}.leave_date"),
            leave_type=str(_require(data, "leave_type", path)),
            days_taken=_decimal(data, "days_taken", path),
            amount_paid=_decimal(data, "amount_paid", path),
        )


# ---------------------------------------------------------------------------
# Pay period
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayPeriod:
    """A pay period as the half-open date range ``[start_date, end_date)``."""
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise InvalidPeriodError(
                self.start_date.isoformat(), self.end_date.isoformat()
            )

    @classmethod
    def for_month(cls, year: int, month: int) -> PayPeriod:
        """Calendar month ``year-month``."""
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return cls(start, end)

    @classmethod
    def semi_monthly(cls, year: int, month: int, half: int) -> PayPeriod:
        """First half (1st-15th) or second half (16th-end) of a month."""
        if half not in (1, 2):
            raise ValueError(f"half must be 1 or 2, got {half}")
        month_period = cls.for_month(year, month)
        mid = date(year, month, 16)
        if half == 1:
            return cls(month_period.start_date, mid)
        return cls(mid, month_period.end_date)

    def contains(self, day: date) -> bool:
        return self.start_date <= day < self.end_date

    @property
    def last_day(self) -> date:
        """Last date included in the period."""
        return self.end_date - timedelta(days=1)

    @property
    def label(self) -> str:
        """``YYYY-MM`` for a calendar month, otherwise ``start..last_day``."""
        start = self.start_date
        days = calendar.monthrange(start.year, start.month)[1]
        if start.day == 1 and self.last_day == date(start.year, start.month, days):
            return f"{start.year:04d}-{start.month:02d}"
        return f"{start.isoformat()}..{self.last_day.isoformat()}"


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayrollItem:
    """One payroll line: an aggregated pay code, a leave line, or a manual item."""
    pay_code_id: str
    description: str
    rate: Decimal
    rate_unit: RateUnit | str
    quantity: Decimal
    amount: Decimal
    is_manual: bool = False
    pay_type: PayType | None = None
    job_type: str | None = None


@dataclass(frozen=True)
class ManualItemSpec:
    """Caller-validated request to add an ad hoc item (amount is computed)."""
    pay_code_id: str
    description: str
    rate: Decimal
    quantity: Decimal
    rate_unit: RateUnit | str
    pay_type: PayType = PayType.TAMBAHAN

    def __post_init__(self):
        unit = RateUnit.coerce(self.rate_unit)
        if unit is not None:
            object.__setattr__(self, "rate_unit", unit)


@dataclass(frozen=True)
class PayrollDeduction:
    """One statutory deduction returned by the external deduction module."""
    deduction_type: str  # e.g. "epf", "socso", "sip", "income_tax"
    employee_amount: Decimal
    employer_amount: Decimal = ZERO
    wage_amount: Decimal = ZERO
    rate_info: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WageBases:
    """Gross figures handed to the deduction module."""
    contribution_base: Decimal  # Base + Tambahan (overtime excluded)
    total: Decimal  # all items


@dataclass(frozen=True)
class EmployeePayroll:
    """Terminal artifact of one processing run for one employee (and job)."""
    employee_id: str
    job_type: str
    section: str
    items: tuple[PayrollItem, ...]
    gross_pay: Decimal
    net_pay: Decimal
    end_month_payment: Decimal
    deductions: tuple[PayrollDeduction, ...] = field(default_factory=tuple)
    mid_month_advance: Decimal | None = None  # paid mid-month, settled at end of month

    @property
    def total_employee_deductions(self) -> Decimal:
        return sum_money(d.employee_amount for d in self.deductions)

    @property
    def manual_items(self) -> tuple[PayrollItem, ...]:
        return tuple(item for item in self.items if item.is_manual)
