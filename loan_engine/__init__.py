"""
Loan Interest Calculation Engine

A stateless calculation core for simple, amortized and interest-only loans:
payment amounts, payment schedules and balance reconciliation against payment
history. All monetary math uses Decimal precision.
"""

__version__ = "2.0.0"
