"""
Calculation Errors

Exceptions raised by the calculation core. Structural input problems are
reported as lists of ValidationError values (see validation.py) and are never
raised one at a time; the exceptions here cover formula-level failures and
entry points invoked with input that should have been validated first.
"""

from typing import Any, Dict, List, Optional


class CalculationError(Exception):
    """Base exception for all calculation failures."""

    def __init__(self, message: str, code: str = "CALCULATION_ERROR",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.code}: {self.message} - {self.details}"
        return f"{self.code}: {self.message}"


class InvalidDecimal(CalculationError):
    """Raised when a value cannot be converted to an exact decimal."""

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid decimal value: {value!r}",
            code="INVALID_DECIMAL",
            details={"value": repr(value)}
        )
        self.value = value


class UnsupportedCalculationType(CalculationError):
    """Raised when an interest calculation type has no strategy."""

    def __init__(self, calculation_type: Any):
        super().__init__(
            f"Unsupported interest calculation type: {calculation_type}",
            code="UNSUPPORTED_CALCULATION_TYPE",
            details={"calculation_type": str(calculation_type)}
        )


class UnsupportedPaymentFrequency(CalculationError):
    """Raised when a payment frequency is not recognised."""

    def __init__(self, frequency: Any):
        super().__init__(
            f"Unsupported payment frequency: {frequency}",
            code="UNSUPPORTED_PAYMENT_FREQUENCY",
            details={"frequency": str(frequency)}
        )


class InvalidLoanInput(CalculationError):
    """
    Raised by calculation entry points when handed input that fails
    validation. The full list of ValidationError values is kept on ``errors``.
    """

    def __init__(self, errors: List[Any], context: str = "Loan"):
        self.errors = list(errors)
        messages = ", ".join(error.message for error in self.errors)
        super().__init__(
            f"{context} validation failed: {messages}",
            code="VALIDATION_FAILED",
            details={"codes": [error.code for error in self.errors]}
        )
