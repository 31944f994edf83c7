"""
Payroll Module Service (``payroll_modules.payroll.service``).

Responsibility
--------------
Orchestrates payroll operations -- per-employee calculation, manual item
maintenance, reruns that keep stored manual items, multi-job combination
and finalization through the statutory deduction collaborator -- by
delegating pure computation to ``payroll_engines`` and persistence to
``PayrollRepository``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``PayrollService`` is the public entry
point for single-payroll operations; ``payroll_batch`` drives whole runs.

Invariants enforced
-------------------
* The configured end-month divisor is used for every recomputation.
* Manual items are never lost on rerun: the stored manual lines for the
  same run, employee and job are appended to the fresh aggregation.
* The service never commits; the repository writes inside the caller's
  transaction.

Failure modes
-------------
* ``DeductionCalculatorMissingError`` -- ``finalize`` without a calculator.
* ``ValueError`` -- ``reprocess`` without a repository, or with a payroll
  key that differs from the repository's.
* Engine errors (``InvalidPeriodError``, ``PayrollCombinationError``,
  ``PayrollItemNotManualError``) propagate unchanged.

Usage::

    with session_scope() as session:
        service = PayrollService(
            repository=PayrollRepository(session, actor_id, "2025-03"),
        )
        payroll = service.reprocess(
            work_logs, "E1", "J1", "Harvest", PayPeriod.for_month(2025, 3),
            payroll_key="2025-03",
        )
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Protocol

from payroll_engines.assembler import (
    apply_deductions,
    combine_employee_payrolls,
    process_employee_payroll,
    with_items,
)
from payroll_engines.classification import wage_bases
from payroll_engines.manual_items import add_manual_item, remove_manual_item
from payroll_kernel.exceptions import DeductionCalculatorMissingError
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.config import PayrollConfig
from payroll_modules.payroll.models import (
    EmployeePayroll,
    LeaveRecord,
    ManualItemSpec,
    PayPeriod,
    PayrollDeduction,
    WageBases,
    WorkLog,
)
from payroll_modules.payroll.repository import PayrollRepository

logger = get_logger("modules.payroll.service")


class DeductionCalculator(Protocol):
    """Statutory deduction module (EPF, SOCSO, SIP, income tax)."""

    def calculate(
        self,
        payroll: EmployeePayroll,
        wage_bases: WageBases,
    ) -> Sequence[PayrollDeduction]:
        ...


class PayrollService:
    """
    Orchestrates single-payroll operations through the engines.

    Contract
    --------
    * Every method returns a new frozen ``EmployeePayroll``; inputs are
      never mutated.
    * Only ``reprocess`` touches the repository.
    """

    def __init__(
        self,
        config: PayrollConfig | None = None,
        repository: PayrollRepository | None = None,
        deduction_calculator: DeductionCalculator | None = None,
    ):
        self._config = config or PayrollConfig.with_defaults()
        self._repository = repository
        self._deductions = deduction_calculator

    @property
    def config(self) -> PayrollConfig:
        return self._config

    # =========================================================================
    # Calculation
    # =========================================================================

    def calculate(
        self,
        work_logs: Iterable[WorkLog],
        employee_id: str,
        job_type: str,
        section: str | None,
        period: PayPeriod,
        *,
        leave_records: Iterable[LeaveRecord] = (),
        mid_month_advance: Decimal | None = None,
    ) -> EmployeePayroll:
        """Compute one employee's payroll for one job (no persistence)."""
        return process_employee_payroll(
            work_logs,
            employee_id,
            job_type,
            section or self._config.default_section,
            period,
            leave_records=leave_records,
            end_month_divisor=self._config.end_month_divisor,
            mid_month_advance=mid_month_advance,
            leave_pay_code_prefix=self._config.leave_pay_code_prefix,
        )

    def combine(self, payrolls: Sequence[EmployeePayroll]) -> EmployeePayroll:
        """Merge one employee's per-job payrolls."""
        return combine_employee_payrolls(
            payrolls, end_month_divisor=self._config.end_month_divisor,
        )

    # =========================================================================
    # Manual items
    # =========================================================================

    def add_manual_item(
        self,
        payroll: EmployeePayroll,
        spec: ManualItemSpec,
    ) -> EmployeePayroll:
        """Append a manual item and recompute the totals.

        Deductions are dropped; call ``finalize`` again afterwards.
        """
        return with_items(
            payroll,
            add_manual_item(payroll.items, spec),
            end_month_divisor=self._config.end_month_divisor,
        )

    def remove_manual_item(self, payroll: EmployeePayroll, index: int) -> EmployeePayroll:
        """Remove the manual item at ``index`` and recompute the totals.

        Deductions are dropped; call ``finalize`` again afterwards.
        """
        return with_items(
            payroll,
            remove_manual_item(payroll.items, index),
            end_month_divisor=self._config.end_month_divisor,
        )

    # =========================================================================
    # Rerun
    # =========================================================================

    def reprocess(
        self,
        work_logs: Iterable[WorkLog],
        employee_id: str,
        job_type: str,
        section: str | None,
        period: PayPeriod,
        *,
        payroll_key: str,
        leave_records: Iterable[LeaveRecord] = (),
        mid_month_advance: Decimal | None = None,
    ) -> EmployeePayroll:
        """
        Recompute and store a payroll, keeping its stored manual items.

        Without ``mid_month_advance`` the stored advance (if any) is kept.

        Raises:
            ValueError: No repository, or ``payroll_key`` does not match it.
        """
        if self._repository is None:
            raise ValueError("reprocess requires a PayrollRepository")
        if payroll_key != self._repository.payroll_key:
            raise ValueError(
                f"payroll_key '{payroll_key}' does not match repository key "
                f"'{self._repository.payroll_key}'"
            )

        stored = self._repository.get(employee_id, job_type)
        manual = stored.manual_items if stored is not None else ()
        if mid_month_advance is None and stored is not None:
            mid_month_advance = stored.mid_month_advance
        payroll = self.calculate(
            work_logs, employee_id, job_type, section, period,
            leave_records=leave_records,
            mid_month_advance=mid_month_advance,
        )
        if manual:
            payroll = with_items(
                payroll,
                payroll.items + manual,
                end_month_divisor=self._config.end_month_divisor,
            )

        self._repository.save(payroll)
        logger.info(
            "payroll_reprocessed",
            extra={
                "payroll_key": payroll_key,
                "employee_id": employee_id,
                "job_id": job_type,
                "manual_items_kept": len(manual),
                "gross_pay": str(payroll.gross_pay),
            },
        )
        return payroll

    # =========================================================================
    # Finalization
    # =========================================================================

    def finalize(
        self,
        payroll: EmployeePayroll,
        *,
        mid_month_advance: Decimal | None = None,
    ) -> EmployeePayroll:
        """
        Apply statutory deductions computed on the payroll's wage bases.

        Raises:
            DeductionCalculatorMissingError: No deduction calculator configured.
        """
        if self._deductions is None:
            raise DeductionCalculatorMissingError(payroll.employee_id)

        bases = wage_bases(payroll.items)
        deductions = self._deductions.calculate(payroll, bases)
        finalized = apply_deductions(
            payroll,
            deductions,
            end_month_divisor=self._config.end_month_divisor,
            mid_month_advance=mid_month_advance,
        )
        logger.info(
            "payroll_finalized",
            extra={
                "employee_id": payroll.employee_id,
                "job_id": payroll.job_type,
                "contribution_base": str(bases.contribution_base),
                "deduction_count": len(finalized.deductions),
                "net_pay": str(finalized.net_pay),
            },
        )
        return finalized
