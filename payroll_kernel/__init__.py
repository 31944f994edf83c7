"""
Payroll Kernel

Shared foundations for the payroll computation engine:
- Structured JSON logging with run-scoped context
- Typed exception hierarchy with machine-readable codes
- Decimal money helpers (the single rounding rule)
- Injectable clock
- SQLAlchemy declarative base and engine/session management
"""

__version__ = "0.1.0"
