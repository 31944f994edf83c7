"""
payroll_batch.domain.types -- Pure frozen dataclasses for payroll runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - All DTOs are frozen dataclasses (immutable).
    - ``PayrollAssignment.item_key`` is the stable business identifier of a
      batch item: ``"{employee_id}-{job_type}"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_modules.payroll.models import EmployeePayroll


# =============================================================================
# Status enums
# =============================================================================


class BatchJobStatus(str, Enum):
    """Run-level outcome."""

    PENDING = "pending"  # Created, not yet started
    RUNNING = "running"  # Execution in progress
    COMPLETED = "completed"  # All items processed successfully
    FAILED = "failed"  # No items succeeded
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed


class BatchItemStatus(str, Enum):
    """Per-item lifecycle status within a payroll run."""

    PENDING = "pending"  # Not yet processed
    PROCESSING = "processing"  # Currently computing or saving
    SUCCEEDED = "succeeded"  # Computed and saved
    FAILED = "failed"  # Computation or save failed


# =============================================================================
# Input DTOs
# =============================================================================


@dataclass(frozen=True)
class PayrollAssignment:
    """One employee x job combination to process in a run."""

    employee_id: str
    job_type: str
    section: str | None = None

    @property
    def item_key(self) -> str:
        return f"{self.employee_id}-{self.job_type}"


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchItemResult:
    """Immutable result of processing a single assignment.

    One item's failure is captured here with its error code and message
    and never aborts the other items of the run.
    """

    item_index: int  # 0-indexed position in the assignment list
    item_key: str  # "{employee_id}-{job_type}"
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None  # e.g. {"gross_pay": "80.00"}
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class PayrollBatchResult:
    """Immutable result of a complete payroll run.

    Returned by ``PayrollBatchProcessor.run()``.
    """

    job_id: UUID
    status: BatchJobStatus
    period_label: str
    total_items: int
    succeeded: int
    failed: int
    item_results: tuple[BatchItemResult, ...] = ()
    payrolls: tuple[EmployeePayroll, ...] = field(default_factory=tuple)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def failed_items(self) -> tuple[BatchItemResult, ...]:
        return tuple(
            r for r in self.item_results if r.status == BatchItemStatus.FAILED
        )
