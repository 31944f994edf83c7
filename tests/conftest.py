"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured logging setup and JSON log capture
- An in-memory SQLite database with per-test rollback sessions
- Deterministic clock and actor id
- The reference March work log (employee E1, job MEE, 8 hours at 10/hour)
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_modules.payroll.models import (
    Activity,
    EmployeeEntry,
    PayPeriod,
    PayType,
    WorkLog,
    DayType,
)

# Registers the payroll tables on Base.metadata before create_tables().
import payroll_modules.payroll.orm  # noqa: F401


# Test actor ID for all persistence operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_amount(1, 1, "Kg")
            logs = captured_logs()
            assert any(r["message"] == "rate_unit_unrecognized" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single in-memory SQLite engine for the entire test session."""
    eng = init_engine_from_url("sqlite://", echo=False)
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture(scope="function")
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; any
    ``session.commit()`` inside the test releases a savepoint, and the
    outer transaction is rolled back at teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(
        bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False,
    )
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def march_2025() -> PayPeriod:
    return PayPeriod.for_month(2025, 3)


@pytest.fixture
def march_work_log() -> WorkLog:
    """One March work log: E1 on job MEE, 8 hours of BASE at 10/hour."""
    return WorkLog(
        id=1,
        log_date=date(2025, 3, 10),
        shift=1,
        day_type=DayType.BIASA,
        section="Harvest",
        employee_entries=(
            EmployeeEntry(
                employee_id="E1",
                job_id="MEE",
                total_hours=Decimal("8"),
                activities=(
                    Activity(
                        pay_code_id="BASE",
                        description="Base hourly wage",
                        pay_type=PayType.BASE,
                        rate_unit="Hour",
                        rate_used=Decimal("10"),
                        calculated_amount=Decimal("80"),
                        hours_applied=Decimal("8"),
                    ),
                ),
            ),
        ),
    )
