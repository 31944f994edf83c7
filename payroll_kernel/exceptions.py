"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A payroll run touches every employee in a section.  Callers (the batch
processor, the service facade, an API layer) must be able to tell a
malformed upstream work log from a programming error without parsing
message text.  Every exception therefore carries:

  1. A TYPED class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe, copied into batch results)
  3. Structured DATA attributes (emitted as ``exc_*`` fields by the
     structured log formatter)

Example:
    try:
        work_log = WorkLog.from_dict(row)
    except MalformedWorkLogError as e:
        result = failed_item(code=e.code, field=e.field)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- WorkLogError
    |   +-- MalformedWorkLogError
    |
    +-- PeriodError
    |   +-- InvalidPeriodError
    |
    +-- PayrollError
    |   +-- PayrollCombinationError
    |   +-- PayrollItemNotManualError
    |   +-- DeductionCalculatorMissingError
    |
    +-- BatchError
        +-- PayrollSinkError

===============================================================================
WHAT IS *NOT* AN EXCEPTION
===============================================================================

* No work logs for an employee/period -- a zero-value payroll is returned.
* An unrecognized rate unit -- the amount is 0 and a warning is logged.
* Zero or negative rates/quantities -- computed mechanically; validation
  belongs to the entry forms upstream.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Work-log exceptions


class WorkLogError(PayrollKernelError):
    """Base exception for work-log input errors."""

    code: str = "WORK_LOG_ERROR"


class MalformedWorkLogError(WorkLogError):
    """Upstream work-log record is missing a field or has a bad value."""

    code: str = "MALFORMED_WORK_LOG"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Malformed work log field '{field}': {reason}")


# Period exceptions


class PeriodError(PayrollKernelError):
    """Base exception for pay-period errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodError(PeriodError):
    """Pay period does not describe a non-empty half-open date range."""

    code: str = "INVALID_PERIOD"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Invalid pay period [{start_date}, {end_date}): "
            "start must precede end"
        )


# Payroll assembly exceptions


class PayrollError(PayrollKernelError):
    """Base exception for payroll assembly errors."""

    code: str = "PAYROLL_ERROR"


class PayrollCombinationError(PayrollError):
    """Per-job payrolls cannot be combined into one employee payroll."""

    code: str = "PAYROLL_COMBINATION_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cannot combine payrolls: {reason}")


class PayrollItemNotManualError(PayrollError):
    """Attempted to remove an aggregated (non-manual) payroll item."""

    code: str = "PAYROLL_ITEM_NOT_MANUAL"

    def __init__(self, index: int, pay_code_id: str):
        self.index = index
        self.pay_code_id = pay_code_id
        super().__init__(
            f"Item {index} ({pay_code_id}) was produced by aggregation "
            "and cannot be removed manually"
        )


class DeductionCalculatorMissingError(PayrollError):
    """Finalization requested without a deduction collaborator."""

    code: str = "DEDUCTION_CALCULATOR_MISSING"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(
            f"No deduction calculator configured; cannot finalize payroll "
            f"for employee {employee_id}"
        )


# Batch exceptions


class BatchError(PayrollKernelError):
    """Base exception for batch-run errors."""

    code: str = "BATCH_ERROR"


class PayrollSinkError(BatchError):
    """Persisting a computed payroll failed."""

    code: str = "PAYROLL_SINK_ERROR"

    def __init__(self, item_key: str, reason: str):
        self.item_key = item_key
        self.reason = reason
        super().__init__(f"Failed to persist payroll {item_key}: {reason}")
