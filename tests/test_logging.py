"""
Tests for payroll_kernel.logging_config.

Covers:
- JSON record envelope, extras and context fields
- Exception fields from payroll kernel errors
- Encoding of Decimal, enum, date and UUID values
- LogContext set / bind / clear
- configure_logging idempotency and logger naming
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payroll_kernel.exceptions import InvalidPeriodError, PayrollSinkError
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from payroll_modules.payroll.models import PayType, RateUnit


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Each test configures logging itself; the suite config is restored after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def json_lines():
    """Configure logging into a buffer; returns a reader of parsed lines."""

    def _start(level: int = logging.INFO):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        configure_logging(level=level, handler=handler)

        def _read() -> list[dict]:
            return [json.loads(line) for line in stream.getvalue().splitlines() if line]

        return _read

    return _start


class TestRecordShape:
    def test_envelope(self, json_lines):
        read = json_lines()
        get_logger("engines.aggregation").info("work_logs_aggregated")

        (record,) = read()
        assert record["level"] == "INFO"
        assert record["message"] == "work_logs_aggregated"
        assert record["logger"] == "payroll_kernel.engines.aggregation"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_are_top_level(self, json_lines):
        read = json_lines()
        get_logger("test").info("payroll_saved", extra={"item_count": 3, "job_type": "MEE"})

        (record,) = read()
        assert record["item_count"] == 3
        assert record["job_type"] == "MEE"

    def test_bound_context_on_record(self, json_lines):
        read = json_lines()
        with LogContext.bind(run_id="run-7", employee_id="E1"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = read()
        assert inside["run_id"] == "run-7"
        assert inside["employee_id"] == "E1"
        assert "run_id" not in outside

    def test_context_wins_over_extra(self, json_lines):
        read = json_lines()
        with LogContext.bind(employee_id="E1"):
            get_logger("test").info("clash", extra={"employee_id": "E2"})

        assert read()[0]["employee_id"] == "E1"

    def test_level_filtering(self, json_lines):
        read = json_lines()
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")

        assert [r["message"] for r in read()] == ["shown"]


class TestExceptionFields:
    def test_plain_exception(self, json_lines):
        read = json_lines()
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = read()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_invalid_period_attributes(self, json_lines):
        read = json_lines()
        try:
            raise InvalidPeriodError("2025-03-01", "2025-02-01")
        except InvalidPeriodError:
            get_logger("test").error("period_rejected", exc_info=True)

        (record,) = read()
        assert record["exc_code"] == "INVALID_PERIOD"
        assert record["exc_start_date"] == "2025-03-01"
        assert record["exc_end_date"] == "2025-02-01"

    def test_sink_error_attributes(self, json_lines):
        read = json_lines()
        try:
            raise PayrollSinkError("E1-MEE", "disk full")
        except PayrollSinkError:
            get_logger("test").error("payroll_save_failed", exc_info=True)

        (record,) = read()
        assert record["exc_code"] == "PAYROLL_SINK_ERROR"
        assert record["exc_item_key"] == "E1-MEE"


class TestValueEncoding:
    def test_payroll_values(self, json_lines):
        read = json_lines()
        actor = uuid4()
        get_logger("test").info(
            "with_values",
            extra={
                "actor": actor,
                "gross_pay": Decimal("80.00"),
                "rate_unit": RateUnit.HOUR,
                "pay_type": PayType.OVERTIME,
                "log_date": date(2025, 3, 10),
            },
        )

        (record,) = read()
        assert record["actor"] == str(actor)
        assert record["gross_pay"] == "80.00"
        assert record["rate_unit"] == "Hour"
        assert record["pay_type"] == "Overtime"
        assert record["log_date"] == "2025-03-10"

    def test_formatter_usable_standalone(self):
        record = logging.LogRecord("payroll_kernel.x", logging.INFO, __file__, 1, "hello", (), None)
        assert json.loads(StructuredFormatter().format(record))["message"] == "hello"


class TestLogContext:
    def test_set_is_additive(self):
        LogContext.set(correlation_id="c")
        LogContext.set(job_id="MEE")
        assert LogContext.get_all() == {"correlation_id": "c", "job_id": "MEE"}

    def test_clear(self):
        LogContext.set(run_id="r")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(run_id="outer")
        with LogContext.bind(run_id="inner"):
            assert LogContext.get_all()["run_id"] == "inner"
        assert LogContext.get_all()["run_id"] == "outer"

    def test_nested_binds_unwind(self):
        with LogContext.bind(employee_id="E1"):
            with LogContext.bind(employee_id="E2", job_id="MEE"):
                assert LogContext.get_all() == {"employee_id": "E2", "job_id": "MEE"}
            assert LogContext.get_all() == {"employee_id": "E1"}
        assert LogContext.get_all() == {}

    def test_bind_ignores_unknown_and_none_fields(self):
        with LogContext.bind(run_id="r", shoe_size="9", job_id=None):
            assert LogContext.get_all() == {"run_id": "r"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            run_id="r",
            employee_id="e",
            job_id="j",
            actor_id="a",
            trace_id="t",
        )
        assert len(LogContext.get_all()) == 6


class TestConfigureLogging:
    def test_second_call_is_ignored(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("payroll_kernel").handlers == [first]

    def test_logger_names(self):
        assert get_logger("batch.processor").name == "payroll_kernel.batch.processor"

    def test_debug_level_reaches_nested_loggers(self, json_lines):
        read = json_lines(level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        (record,) = read()
        assert record["logger"] == "payroll_kernel.deep.nested.module"
