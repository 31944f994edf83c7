"""
Payroll Configuration Schema.

Defines the structure and defaults for payroll engine settings.  Values are
loaded from a YAML file or a dict at runtime; the defaults reproduce the
behaviour of the monthly payroll run (batches of 5 employees, end-month
payment defaulting to half of net pay).
"""

from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml

from payroll_kernel.domain.values import to_decimal
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.config")

_DECIMAL_FIELDS = {"end_month_divisor"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


@dataclass
class PayrollConfig:
    """
    Configuration schema for the payroll engine.

    Override at instantiation or load from YAML:

        config = PayrollConfig.from_yaml(Path("payroll.yaml"))

    where ``payroll.yaml`` contains e.g.::

        payroll:
          batch_size: 10
          end_month_divisor: "2"
    """

    # Batch run
    batch_size: int = 5
    max_workers: int | None = None  # falls back to batch_size

    # End-month payment split (net_pay / divisor)
    end_month_divisor: Decimal = Decimal("2")

    # Labels
    default_section: str = "Unknown"
    leave_pay_code_prefix: str = "CUTI"
    currency: str = "MYR"

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if not isinstance(self.end_month_divisor, Decimal):
            self.end_month_divisor = to_decimal(self.end_month_divisor)
        if self.end_month_divisor <= 0:
            raise ValueError("end_month_divisor must be positive")
        if not self.leave_pay_code_prefix:
            raise ValueError("leave_pay_code_prefix cannot be empty")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError(
                f"currency must be a 3-letter code, got '{self.currency}'"
            )
        self.currency = self.currency.upper()

        logger.info(
            "payroll_config_initialized",
            extra={
                "batch_size": self.batch_size,
                "max_workers": self.effective_max_workers,
                "end_month_divisor": str(self.end_month_divisor),
                "currency": self.currency,
            },
        )

    @property
    def effective_max_workers(self) -> int:
        return self.max_workers or self.batch_size

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard monthly-run defaults."""
        logger.info("payroll_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from database/file)."""
        logger.info(
            "payroll_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown payroll config keys: {sorted(unknown)}")
        values = dict(data)
        for name in _DECIMAL_FIELDS & values.keys():
            values[name] = to_decimal(values[name])
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Path) -> Self:
        """Create config from a YAML file; a top-level ``payroll:`` key is optional."""
        data = load_yaml_file(Path(path))
        if "payroll" in data:
            data = data["payroll"] or {}
        return cls.from_dict(data)
