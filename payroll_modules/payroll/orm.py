"""
Payroll ORM Persistence Models (``payroll_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen ``EmployeePayroll`` DTO
    and its lines.  Each ORM class mirrors a DTO and provides
    ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - One payroll per (payroll_key, employee_id, job_type).
    - Items are ordered by ``line_no``; the stored order is the DTO order.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.domain.values import round_money


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


# ---------------------------------------------------------------------------
# EmployeePayrollModel
# ---------------------------------------------------------------------------

class EmployeePayrollModel(TrackedBase):
    """
    ORM model for ``EmployeePayroll`` -- one employee's payroll for one job
    (or a combined job list) within one payroll run.

    Contract:
        ``payroll_key`` identifies the run (e.g. ``"2025-03"``).  A rerun
        for the same key, employee and job replaces the stored figures and
        lines rather than adding a second row.

    Guarantees:
        - (payroll_key, employee_id, job_type) is unique
          (uq_payroll_employee_payroll).
        - ``items`` and ``deductions`` are deleted with their parent.
    """

    __tablename__ = "payroll_employee_payrolls"

    payroll_key: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    job_type: Mapped[str] = mapped_column(String(255), nullable=False)
    section: Mapped[str] = mapped_column(String(100), nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)
    end_month_payment: Mapped[Decimal] = mapped_column(nullable=False)
    mid_month_advance: Mapped[Decimal | None] = mapped_column(nullable=True)

    items: Mapped[list["PayrollItemModel"]] = relationship(
        "PayrollItemModel",
        back_populates="payroll",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="PayrollItemModel.line_no",
    )
    deductions: Mapped[list["PayrollDeductionModel"]] = relationship(
        "PayrollDeductionModel",
        back_populates="payroll",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="PayrollDeductionModel.line_no",
    )

    __table_args__ = (
        UniqueConstraint(
            "payroll_key", "employee_id", "job_type",
            name="uq_payroll_employee_payroll",
        ),
        Index("idx_payroll_employee_payroll_key", "payroll_key"),
        Index("idx_payroll_employee_payroll_employee", "employee_id"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import EmployeePayroll
        return EmployeePayroll(
            employee_id=self.employee_id,
            job_type=self.job_type,
            section=self.section,
            items=tuple(item.to_dto() for item in self.items),
            gross_pay=round_money(self.gross_pay),
            net_pay=round_money(self.net_pay),
            end_month_payment=round_money(self.end_month_payment),
            deductions=tuple(d.to_dto() for d in self.deductions),
            mid_month_advance=(
                round_money(self.mid_month_advance)
                if self.mid_month_advance is not None
                else None
            ),
        )

    @classmethod
    def from_dto(cls, dto, payroll_key: str, created_by_id: UUID) -> "EmployeePayrollModel":
        model = cls(
            payroll_key=payroll_key,
            employee_id=dto.employee_id,
            job_type=dto.job_type,
            section=dto.section,
            gross_pay=dto.gross_pay,
            net_pay=dto.net_pay,
            end_month_payment=dto.end_month_payment,
            mid_month_advance=dto.mid_month_advance,
            created_by_id=created_by_id,
        )
        model.replace_lines(dto, created_by_id)
        return model

    def update_from_dto(self, dto, updated_by_id: UUID) -> None:
        """Overwrite figures and lines with those of ``dto`` (rerun)."""
        self.section = dto.section
        self.gross_pay = dto.gross_pay
        self.net_pay = dto.net_pay
        self.end_month_payment = dto.end_month_payment
        self.mid_month_advance = dto.mid_month_advance
        self.updated_by_id = updated_by_id
        self.replace_lines(dto, updated_by_id)

    def replace_lines(self, dto, created_by_id: UUID) -> None:
        self.items = [
            PayrollItemModel.from_dto(item, line_no, created_by_id=created_by_id)
            for line_no, item in enumerate(dto.items)
        ]
        self.deductions = [
            PayrollDeductionModel.from_dto(d, line_no, created_by_id=created_by_id)
            for line_no, d in enumerate(dto.deductions)
        ]

    def __repr__(self) -> str:
        return (
            f"<EmployeePayrollModel {self.payroll_key} "
            f"employee={self.employee_id} job={self.job_type} gross={self.gross_pay}>"
        )


# ---------------------------------------------------------------------------
# PayrollItemModel
# ---------------------------------------------------------------------------

class PayrollItemModel(TrackedBase):
    """
    ORM model for ``PayrollItem`` -- one line on an employee payroll.

    Contract:
        ``is_manual`` distinguishes ad hoc lines (kept across reruns) from
        aggregated ones (recomputed on every run).
    """

    __tablename__ = "payroll_items"

    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_employee_payrolls.id"), nullable=False,
    )
    line_no: Mapped[int] = mapped_column(nullable=False)
    pay_code_id: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    rate_unit: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    is_manual: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pay_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    job_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    payroll: Mapped["EmployeePayrollModel"] = relationship(
        "EmployeePayrollModel", back_populates="items",
    )

    __table_args__ = (
        Index("idx_payroll_item_payroll", "payroll_id"),
        Index("idx_payroll_item_pay_code", "pay_code_id"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import PayrollItem, PayType, RateUnit
        return PayrollItem(
            pay_code_id=self.pay_code_id,
            description=self.description,
            rate=self.rate,
            rate_unit=RateUnit.coerce(self.rate_unit) or self.rate_unit,
            quantity=self.quantity,
            amount=round_money(self.amount),
            is_manual=self.is_manual,
            pay_type=PayType(self.pay_type) if self.pay_type else None,
            job_type=self.job_type,
        )

    @classmethod
    def from_dto(cls, dto, line_no: int, created_by_id: UUID) -> "PayrollItemModel":
        return cls(
            line_no=line_no,
            pay_code_id=dto.pay_code_id,
            description=dto.description,
            rate=dto.rate,
            rate_unit=_enum_value(dto.rate_unit),
            quantity=dto.quantity,
            amount=dto.amount,
            is_manual=dto.is_manual,
            pay_type=_enum_value(dto.pay_type),
            job_type=dto.job_type,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollItemModel #{self.line_no} {self.pay_code_id} "
            f"amount={self.amount} manual={self.is_manual}>"
        )


# ---------------------------------------------------------------------------
# PayrollDeductionModel
# ---------------------------------------------------------------------------

class PayrollDeductionModel(TrackedBase):
    """ORM model for ``PayrollDeduction`` -- one statutory deduction line."""

    __tablename__ = "payroll_deductions"

    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_employee_payrolls.id"), nullable=False,
    )
    line_no: Mapped[int] = mapped_column(nullable=False)
    deduction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_amount: Mapped[Decimal] = mapped_column(nullable=False)
    employer_amount: Mapped[Decimal] = mapped_column(nullable=False)
    wage_amount: Mapped[Decimal] = mapped_column(nullable=False)
    rate_info: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    payroll: Mapped["EmployeePayrollModel"] = relationship(
        "EmployeePayrollModel", back_populates="deductions",
    )

    __table_args__ = (
        Index("idx_payroll_deduction_payroll", "payroll_id"),
    )

    def to_dto(self):
        from payroll_modules.payroll.models import PayrollDeduction
        return PayrollDeduction(
            deduction_type=self.deduction_type,
            employee_amount=round_money(self.employee_amount),
            employer_amount=round_money(self.employer_amount),
            wage_amount=round_money(self.wage_amount),
            rate_info=dict(self.rate_info or {}),
        )

    @classmethod
    def from_dto(cls, dto, line_no: int, created_by_id: UUID) -> "PayrollDeductionModel":
        return cls(
            line_no=line_no,
            deduction_type=dto.deduction_type,
            employee_amount=dto.employee_amount,
            employer_amount=dto.employer_amount,
            wage_amount=dto.wage_amount,
            rate_info=dict(dto.rate_info),
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollDeductionModel {self.deduction_type} "
            f"employee={self.employee_amount}>"
        )
