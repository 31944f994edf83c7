"""
Structured logging for payroll runs.

Every record is written as one JSON object per line::

    {"ts": "...", "level": "INFO", "logger": "payroll_kernel.batch.processor",
     "message": "payroll_batch_completed", "run_id": "...", "succeeded": 12}

Messages are snake_case event names; details travel in ``extra``.  Fields
that identify the unit of work (run, employee, job) are bound once with
``LogContext.bind`` and appear on every record emitted inside the block,
including records from worker threads started with a copied context.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

_CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None)
    for name in (
        "correlation_id",
        "run_id",
        "employee_id",
        "job_id",
        "actor_id",
        "trace_id",
    )
}


class LogContext:
    """Run-scoped log fields held in context variables.

    Values are per thread and per asyncio task.  Unknown field names passed
    to ``bind`` are ignored.
    """

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        run_id: str | None = None,
        employee_id: str | None = None,
        job_id: str | None = None,
        actor_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Overwrite the given fields; ``None`` leaves a field untouched."""
        values = {
            "correlation_id": correlation_id,
            "run_id": run_id,
            "employee_id": employee_id,
            "job_id": job_id,
            "actor_id": actor_id,
            "trace_id": trace_id,
        }
        for name, value in values.items():
            if value is not None:
                _CONTEXT_FIELDS[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: var.get()
            for name, var in _CONTEXT_FIELDS.items()
            if var.get() is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_FIELDS.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_Binding":
        """``with LogContext.bind(run_id=...):`` sets fields for the block."""
        return _Binding(fields)


class _Binding:
    def __init__(self, fields: dict[str, str | None]):
        self._fields = {
            name: value
            for name, value in fields.items()
            if value is not None and name in _CONTEXT_FIELDS
        }
        self._tokens: list[tuple[ContextVar, Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            var = _CONTEXT_FIELDS[name]
            self._tokens.append((var, var.set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# Attributes every LogRecord carries; anything else on a record came from
# ``extra``.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    # Decimal, UUID and anything else
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; context fields win over ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # structured attributes of PayrollKernelError subclasses
        for name, value in vars(exc).items():
            if not name.startswith("_") and name not in ("args", "code"):
                fields[f"exc_{name}"] = value
        return fields


_ROOT = "payroll_kernel"


def get_logger(name: str) -> logging.Logger:
    """``get_logger("engines.aggregation")`` -> ``payroll_kernel.engines.aggregation``."""
    return logging.getLogger(f"{_ROOT}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``payroll_kernel`` logger.

    Only the first call has an effect until ``reset_logging`` is called.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging`` again (tests)."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
