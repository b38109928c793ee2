"""School back-office API: admissions intake, staff review and contact messages."""

__version__ = "0.1.0"
