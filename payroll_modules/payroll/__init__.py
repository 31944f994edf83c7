"""
Payroll Module (``payroll_modules.payroll``).

Responsibility
--------------
Domain nouns of the payroll computation engine (work logs, activities,
payroll items, employee payrolls), the configuration schema, and the
persistence/service glue around the pure engines in ``payroll_engines``.

Architecture position
---------------------
**Modules layer** -- ``models`` and ``config`` are pure and imported by the
engines.  ``orm``, ``repository`` and ``service`` sit above the engines and
are NOT re-exported here, so importing the models never pulls in SQLAlchemy
or the engines.

Failure modes
-------------
* ``MalformedWorkLogError`` when parsing upstream work-log records.
* ``InvalidPeriodError`` for an empty or inverted pay period.
"""

from payroll_modules.payroll.config import PayrollConfig
from payroll_modules.payroll.models import (
    Activity,
    DayType,
    EmployeeEntry,
    EmployeePayroll,
    LeaveRecord,
    ManualItemSpec,
    PayPeriod,
    PayrollDeduction,
    PayrollItem,
    PayType,
    RateUnit,
    WageBases,
    WorkLog,
)

__all__ = [
    "Activity",
    "DayType",
    "EmployeeEntry",
    "EmployeePayroll",
    "LeaveRecord",
    "ManualItemSpec",
    "PayPeriod",
    "PayrollConfig",
    "PayrollDeduction",
    "PayrollItem",
    "PayType",
    "RateUnit",
    "WageBases",
    "WorkLog",
]
