"""
PayrollRepository -- persistence adapter for computed payrolls.

Contract:
    Stores ``EmployeePayroll`` DTOs under a payroll key (the run, e.g.
    ``"2025-03"``).  ``save`` upserts: a rerun for the same employee and
    job replaces the stored figures and ALL stored lines.  Satisfies the
    ``PayrollSink`` protocol used by the batch processor.

Architecture: payroll_modules/payroll.  Imports the payroll ORM models and
    kernel exceptions.  Never imported by payroll_engines.

Invariants enforced:
    - Each save runs inside a SAVEPOINT; a failed save leaves the outer
      transaction usable.
    - Never calls ``session.commit()`` -- the caller owns the transaction
      (see ``payroll_kernel.db.engine.session_scope``).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_kernel.exceptions import PayrollSinkError
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import EmployeePayroll, PayrollItem
from payroll_modules.payroll.orm import EmployeePayrollModel

logger = get_logger("modules.payroll.repository")


class PayrollRepository:
    """Reads and writes the payrolls of one payroll run."""

    def __init__(self, session: Session, actor_id: UUID, payroll_key: str):
        self._session = session
        self._actor_id = actor_id
        self._payroll_key = payroll_key

    @property
    def payroll_key(self) -> str:
        return self._payroll_key

    def _find(self, employee_id: str, job_type: str) -> EmployeePayrollModel | None:
        return self._session.execute(
            select(EmployeePayrollModel).where(
                EmployeePayrollModel.payroll_key == self._payroll_key,
                EmployeePayrollModel.employee_id == employee_id,
                EmployeePayrollModel.job_type == job_type,
            )
        ).scalar_one_or_none()

    def save(self, payroll: EmployeePayroll) -> None:
        """
        Insert or replace the stored payroll for its employee and job.

        Raises:
            PayrollSinkError: The database rejected the write.
        """
        item_key = f"{payroll.employee_id}-{payroll.job_type}"
        try:
            with self._session.begin_nested():
                row = self._find(payroll.employee_id, payroll.job_type)
                created = row is None
                if created:
                    row = EmployeePayrollModel.from_dto(
                        payroll, self._payroll_key, created_by_id=self._actor_id,
                    )
                    self._session.add(row)
                else:
                    row.update_from_dto(payroll, updated_by_id=self._actor_id)
                self._session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "payroll_save_failed",
                extra={
                    "payroll_key": self._payroll_key,
                    "employee_id": payroll.employee_id,
                    "job_id": payroll.job_type,
                },
                exc_info=True,
            )
            raise PayrollSinkError(item_key, str(exc)) from exc

        logger.info(
            "payroll_saved",
            extra={
                "payroll_key": self._payroll_key,
                "employee_id": payroll.employee_id,
                "job_id": payroll.job_type,
                "inserted": created,
                "item_count": len(payroll.items),
                "gross_pay": str(payroll.gross_pay),
            },
        )

    def get(self, employee_id: str, job_type: str) -> EmployeePayroll | None:
        row = self._find(employee_id, job_type)
        return row.to_dto() if row is not None else None

    def manual_items(self, employee_id: str, job_type: str) -> tuple[PayrollItem, ...]:
        """Stored manual lines for the employee and job (empty if none)."""
        row = self._find(employee_id, job_type)
        if row is None:
            return ()
        return tuple(item.to_dto() for item in row.items if item.is_manual)

    def list_payrolls(self) -> list[EmployeePayroll]:
        """All payrolls of this run, ordered by employee then job."""
        rows = self._session.execute(
            select(EmployeePayrollModel)
            .where(EmployeePayrollModel.payroll_key == self._payroll_key)
            .order_by(EmployeePayrollModel.employee_id, EmployeePayrollModel.job_type)
        ).scalars().all()
        return [row.to_dto() for row in rows]
