"""
payroll_batch.domain -- Pure types and value objects for payroll runs.

ZERO I/O.  All types are frozen dataclasses.
"""

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    PayrollAssignment,
    PayrollBatchResult,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchJobStatus",
    "PayrollAssignment",
    "PayrollBatchResult",
]
