"""
Payroll business modules.

``payroll_modules.payroll`` holds the domain DTOs, configuration schema,
ORM persistence adapter and the ``PayrollService`` facade.
"""
