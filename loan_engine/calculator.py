"""
Loan Calculator

Convenience API over bare loan terms. Every call validates its input and
returns a CalculationResult instead of raising, with advisory warnings for
unusual but valid terms.
"""

from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaValidationError

from . import __version__
from . import amortized, interest_only, payment_schedule, simple_interest
from .errors import CalculationError, InvalidLoanInput
from .models import (
    AmortizationSchedule, BalanceCalculationResult, CalculationResult,
    InterestCalculationType, LoanCalculationInput, PaymentCalculation,
    PaymentFrequency, PaymentRecord, PaymentScheduleOptions, ValidationError
)
from .money import CalculationConfig, to_decimal
from .schemas import LoanPaymentFormModel, schema_errors
from .validation import (
    strategy_warnings, validate_calculation_params, validate_decimal_conversion
)


# Payment calculators by calculation type
PAYMENT_CALCULATORS = {
    InterestCalculationType.SIMPLE: simple_interest.calculate_simple_interest_payment,
    InterestCalculationType.AMORTIZED: amortized.calculate_amortized_payment,
    InterestCalculationType.INTEREST_ONLY: interest_only.calculate_interest_only_payment,
}

SUPPORTED_CALCULATION_TYPES = list(PAYMENT_CALCULATORS)
SUPPORTED_PAYMENT_FREQUENCIES = list(PaymentFrequency)


def _error_from_exception(exc: CalculationError, field: str = "calculation") -> ValidationError:
    return ValidationError(field=field, message=exc.message, code=exc.code, value=exc.details or None)


def _coerce_terms(
    principal: Any,
    annual_rate: Any,
    term_months: Any,
    calculation_type: Any,
    payment_frequency: Any
) -> Tuple[List[ValidationError], Optional[LoanCalculationInput]]:
    """Convert raw terms into a loan, or report why they cannot be used"""
    errors: List[ValidationError] = []
    errors.extend(validate_decimal_conversion(principal, "principal"))
    errors.extend(validate_decimal_conversion(annual_rate, "interest_rate"))

    try:
        calculation_type = InterestCalculationType.from_value(calculation_type)
    except CalculationError:
        errors.append(ValidationError(
            field="interest_calculation_type",
            message="Calculation type must be SIMPLE, AMORTIZED, or INTEREST_ONLY",
            code="INVALID_CALCULATION_TYPE",
            value=calculation_type
        ))

    try:
        payment_frequency = PaymentFrequency.from_value(payment_frequency)
    except CalculationError:
        errors.append(ValidationError(
            field="payment_frequency",
            message="Payment frequency must be MONTHLY or BI_WEEKLY",
            code="INVALID_PAYMENT_FREQUENCY",
            value=payment_frequency
        ))

    if errors:
        return errors, None

    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    errors = validate_calculation_params(principal, annual_rate, term_months)
    if errors:
        return errors, None

    return [], LoanCalculationInput.from_terms(
        principal=principal,
        interest_rate=annual_rate,
        term_months=term_months,
        interest_calculation_type=calculation_type,
        payment_frequency=payment_frequency
    )


def _with_start_date(loan: LoanCalculationInput, start_date: Optional[date]) -> LoanCalculationInput:
    if start_date is None:
        return loan
    return LoanCalculationInput.from_terms(
        principal=loan.principal,
        interest_rate=loan.interest_rate,
        term_months=loan.term_months,
        interest_calculation_type=loan.interest_calculation_type,
        payment_frequency=loan.payment_frequency,
        start_date=start_date,
        loan_id=loan.id
    )


def _warnings_for(loan: LoanCalculationInput) -> List[ValidationError]:
    return strategy_warnings(
        loan.interest_calculation_type, loan.principal, loan.interest_rate, loan.term_months
    )


def calculate_loan_payment(
    principal: Any,
    annual_rate: Any,
    term_months: int,
    calculation_type: Any = InterestCalculationType.AMORTIZED,
    payment_frequency: Any = PaymentFrequency.MONTHLY,
    config: Optional[CalculationConfig] = None
) -> CalculationResult[PaymentCalculation]:
    """
    Periodic payment for bare loan terms

    Args:
        principal: Loan amount (Decimal, int, float or numeric string)
        annual_rate: Annual rate as percentage, e.g. 6 for 6%
        term_months: Loan term in months
        calculation_type: Member or name of InterestCalculationType
        payment_frequency: Member or name of PaymentFrequency
        config: Rounding settings

    Returns:
        CalculationResult holding a PaymentCalculation on success
    """
    errors, loan = _coerce_terms(principal, annual_rate, term_months,
                                 calculation_type, payment_frequency)
    if errors:
        return CalculationResult.fail(errors)

    warnings = _warnings_for(loan)
    calculator = PAYMENT_CALCULATORS[loan.interest_calculation_type]

    try:
        data = calculator(
            loan.principal, loan.interest_rate, loan.term_months,
            loan.payment_frequency, config=config
        )
    except InvalidLoanInput as e:
        return CalculationResult.fail(e.errors, warnings)
    except CalculationError as e:
        return CalculationResult.fail([_error_from_exception(e)], warnings)

    return CalculationResult.ok(data, warnings)


def generate_loan_schedule(
    principal: Any,
    annual_rate: Any,
    term_months: int,
    calculation_type: Any = InterestCalculationType.AMORTIZED,
    payment_frequency: Any = PaymentFrequency.MONTHLY,
    start_date: Optional[date] = None,
    options: Optional[PaymentScheduleOptions] = None,
    config: Optional[CalculationConfig] = None
) -> CalculationResult[AmortizationSchedule]:
    """Payment schedule for bare loan terms, starting today unless given a start date"""
    errors, loan = _coerce_terms(principal, annual_rate, term_months,
                                 calculation_type, payment_frequency)
    if errors:
        return CalculationResult.fail(errors)

    loan = _with_start_date(loan, start_date)
    warnings = _warnings_for(loan)

    try:
        data = payment_schedule.generate_payment_schedule(loan, options, config)
    except InvalidLoanInput as e:
        return CalculationResult.fail(e.errors, warnings)
    except CalculationError as e:
        return CalculationResult.fail([_error_from_exception(e)], warnings)

    return CalculationResult.ok(data, warnings)


def calculate_loan_balance(
    principal: Any,
    annual_rate: Any,
    term_months: int,
    calculation_type: Any = InterestCalculationType.AMORTIZED,
    payment_frequency: Any = PaymentFrequency.MONTHLY,
    payment_history: Optional[Sequence[PaymentRecord]] = None,
    start_date: Optional[date] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> CalculationResult[BalanceCalculationResult]:
    """
    Balance of a loan given by bare terms after a payment history

    Bare terms carry no loan identity, so every payment is attributed to
    the loan being calculated.
    """
    errors, loan = _coerce_terms(principal, annual_rate, term_months,
                                 calculation_type, payment_frequency)
    if errors:
        return CalculationResult.fail(errors)

    loan = _with_start_date(loan, start_date)
    warnings = _warnings_for(loan)
    payments = [replace(payment, loan_id=loan.id) for payment in payment_history or []]

    try:
        data = payment_schedule.calculate_current_balance(loan, payments, as_of_date, config)
    except InvalidLoanInput as e:
        return CalculationResult.fail(e.errors, warnings)
    except CalculationError as e:
        return CalculationResult.fail([_error_from_exception(e)], warnings)

    return CalculationResult.ok(data, warnings)


def calculate_loan_payment_for_form(
    principal: str,
    interest_rate: str,
    term_months: Any,
    calculation_type: str = "AMORTIZED",
    payment_frequency: str = "MONTHLY",
    config: Optional[CalculationConfig] = None
) -> CalculationResult[PaymentCalculation]:
    """
    Payment calculation from raw form fields, e.g. principal "$250,000.00"
    """
    try:
        form = LoanPaymentFormModel(
            principal=str(principal),
            interest_rate=str(interest_rate),
            term_months=term_months,
            calculation_type=str(calculation_type),
            payment_frequency=str(payment_frequency)
        )
    except SchemaValidationError as e:
        return CalculationResult.fail(schema_errors(e))

    return calculate_loan_payment(
        form.principal_amount(),
        form.annual_rate(),
        form.term_months,
        form.interest_calculation_type(),
        form.frequency(),
        config
    )


def get_supported_calculation_types() -> List[InterestCalculationType]:
    return list(SUPPORTED_CALCULATION_TYPES)


def is_calculation_type_supported(calculation_type: Any) -> bool:
    try:
        return InterestCalculationType.from_value(calculation_type) in PAYMENT_CALCULATORS
    except CalculationError:
        return False


def get_calculation_library_info() -> Dict[str, Any]:
    """Describe the engine and what it supports"""
    return {
        "name": "loan-engine",
        "version": __version__,
        "supported_calculation_types": [t.value for t in SUPPORTED_CALCULATION_TYPES],
        "supported_payment_frequencies": [f.code for f in SUPPORTED_PAYMENT_FREQUENCIES],
        "features": [
            "Simple interest calculations",
            "Amortized loan payments and schedules",
            "Interest-only loans with balloon payments",
            "Balance tracking from payment history",
            "Payment impact analysis",
            "Decimal precision for monetary values",
        ],
    }
