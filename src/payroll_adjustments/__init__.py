"""Leave-to-payroll proration and retroactive pay adjustment engine."""

__version__ = "1.0.0"
