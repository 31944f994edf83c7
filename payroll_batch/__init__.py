"""
payroll_batch -- Monthly payroll run over many employees and jobs.

Processes employee x job assignments in chunks, computing payrolls
concurrently and saving them one at a time through a ``PayrollSink``.
Each assignment is an isolated item with its own status and error.

Architecture:
    payroll_batch/ is a top-level package.  Nothing in payroll_kernel/,
    payroll_engines/ or payroll_modules/ imports from payroll_batch.
"""

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    PayrollAssignment,
    PayrollBatchResult,
)
from payroll_batch.processor import (
    PayrollBatchProcessor,
    PayrollSink,
    rate_unit_anomalies,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchJobStatus",
    "PayrollAssignment",
    "PayrollBatchProcessor",
    "PayrollBatchResult",
    "PayrollSink",
    "rate_unit_anomalies",
]
