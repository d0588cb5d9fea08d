"""
Input Validation Module

Structural validation of loan and payment input. Validators collect every
problem into a list of ValidationError values and never raise for a bad
field; they only compare values and never perform calculations.
"""

from decimal import Decimal, InvalidOperation
from datetime import date
from typing import Any, List, Optional, Sequence

from .errors import InvalidDecimal, InvalidLoanInput
from .models import (
    InterestCalculationType, LoanCalculationInput, PaymentFrequency,
    PaymentRecord, ValidationError
)
from .money import to_decimal
from .periods import as_date


MAX_PRINCIPAL = Decimal('100000000')

# Maximum reasonable interest rate (100%)
MAX_INTEREST_RATE = Decimal('100')

MIN_LOAN_TERM = 1

# 50 years
MAX_LOAN_TERM = 600

# Thresholds for advisory warnings
SIMPLE_INTEREST_MAX_TYPICAL_TERM = 120
AMORTIZED_MIN_TYPICAL_TERM = 12
INTEREST_ONLY_MAX_TYPICAL_TERM = 360
INTEREST_ONLY_BALLOON_RISK_PRINCIPAL = Decimal('1000000')


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return isinstance(value, int)


def _is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_date(value: Any) -> bool:
    return isinstance(value, date)


def _validate_principal(principal: Any, errors: List[ValidationError], field: str = "principal") -> None:
    if not _is_number(principal) or principal <= 0:
        errors.append(ValidationError(
            field=field,
            message="Principal must be greater than 0",
            code="INVALID_PRINCIPAL",
            value=principal
        ))
    elif principal > MAX_PRINCIPAL:
        errors.append(ValidationError(
            field=field,
            message=f"Principal cannot exceed {MAX_PRINCIPAL:,}",
            code="PRINCIPAL_TOO_LARGE",
            value=principal
        ))


def _validate_rate(rate: Any, errors: List[ValidationError], field: str = "interest_rate") -> None:
    if not _is_number(rate) or rate < 0:
        errors.append(ValidationError(
            field=field,
            message="Interest rate must be a non-negative number",
            code="INVALID_INTEREST_RATE",
            value=rate
        ))
    elif rate > MAX_INTEREST_RATE:
        errors.append(ValidationError(
            field=field,
            message=f"Interest rate cannot exceed {MAX_INTEREST_RATE}%",
            code="EXCESSIVE_INTEREST_RATE",
            value=rate
        ))


def _validate_term(term: Any, errors: List[ValidationError], field: str = "term_months") -> None:
    if not _is_whole_number(term) or term < MIN_LOAN_TERM:
        errors.append(ValidationError(
            field=field,
            message=f"Loan term must be a whole number of at least {MIN_LOAN_TERM} month",
            code="INVALID_TERM",
            value=term
        ))
    elif term > MAX_LOAN_TERM:
        errors.append(ValidationError(
            field=field,
            message=f"Loan term cannot exceed {MAX_LOAN_TERM} months",
            code="EXCESSIVE_TERM",
            value=term
        ))


def validate_loan_input(loan: LoanCalculationInput) -> List[ValidationError]:
    """
    Validate loan data before any calculation

    Args:
        loan: Loan to validate

    Returns:
        Every problem found; an empty list means the loan is valid
    """
    errors: List[ValidationError] = []

    _validate_principal(loan.principal, errors)
    _validate_rate(loan.interest_rate, errors)
    _validate_term(loan.term_months, errors)

    # Dates
    if not _is_date(loan.start_date):
        errors.append(ValidationError(
            field="start_date",
            message="Start date must be a valid date",
            code="INVALID_START_DATE",
            value=loan.start_date
        ))

    if not _is_date(loan.end_date):
        errors.append(ValidationError(
            field="end_date",
            message="End date must be a valid date",
            code="INVALID_END_DATE",
            value=loan.end_date
        ))

    if _is_date(loan.start_date) and _is_date(loan.end_date):
        if as_date(loan.start_date) >= as_date(loan.end_date):
            errors.append(ValidationError(
                field="end_date",
                message="End date must be after start date",
                code="INVALID_DATE_RANGE",
                value={"start_date": loan.start_date, "end_date": loan.end_date}
            ))

    if not isinstance(loan.interest_calculation_type, InterestCalculationType):
        errors.append(ValidationError(
            field="interest_calculation_type",
            message="Calculation type must be SIMPLE, AMORTIZED, or INTEREST_ONLY",
            code="INVALID_CALCULATION_TYPE",
            value=loan.interest_calculation_type
        ))

    if not isinstance(loan.payment_frequency, PaymentFrequency):
        errors.append(ValidationError(
            field="payment_frequency",
            message="Payment frequency must be MONTHLY or BI_WEEKLY",
            code="INVALID_PAYMENT_FREQUENCY",
            value=loan.payment_frequency
        ))

    # Balance
    if not _is_number(loan.balance) or loan.balance < 0:
        errors.append(ValidationError(
            field="balance",
            message="Balance must be greater than or equal to 0",
            code="INVALID_BALANCE",
            value=loan.balance
        ))
    elif _is_number(loan.principal) and loan.balance > loan.principal:
        errors.append(ValidationError(
            field="balance",
            message="Balance cannot exceed original principal",
            code="BALANCE_EXCEEDS_PRINCIPAL",
            value={"balance": loan.balance, "principal": loan.principal}
        ))

    return errors


def validate_calculation_params(principal: Any, rate: Any, term: Any) -> List[ValidationError]:
    """Validate bare loan terms (principal, annual rate percentage, term in months)"""
    errors: List[ValidationError] = []
    _validate_principal(principal, errors)
    _validate_rate(rate, errors)
    _validate_term(term, errors)
    return errors


def validate_payment_terms(payment_amount: Any, rate: Any, term: Any) -> List[ValidationError]:
    """Validate a periodic payment amount with its annual rate and term"""
    errors: List[ValidationError] = []
    if not _is_number(payment_amount) or payment_amount <= 0:
        errors.append(ValidationError(
            field="payment_amount",
            message="Payment amount must be greater than 0",
            code="INVALID_PAYMENT_AMOUNT",
            value=payment_amount
        ))
    _validate_rate(rate, errors)
    _validate_term(term, errors)
    return errors


def validate_payment_input(payment: PaymentRecord, loan_id: Optional[str] = None,
                           field_prefix: str = "", label: str = "Payment") -> List[ValidationError]:
    """
    Validate one payment record

    Args:
        payment: Payment to validate
        loan_id: If given, the payment must belong to this loan
        field_prefix: Prefix for reported field names, e.g. "payments[2]."
        label: Prefix for reported messages
    """
    errors: List[ValidationError] = []

    if not _is_number(payment.amount) or payment.amount <= 0:
        errors.append(ValidationError(
            field=f"{field_prefix}amount",
            message=f"{label}: amount must be greater than 0",
            code="INVALID_PAYMENT_AMOUNT",
            value=payment.amount
        ))

    if not _is_date(payment.payment_date):
        errors.append(ValidationError(
            field=f"{field_prefix}payment_date",
            message=f"{label}: date must be a valid date",
            code="INVALID_PAYMENT_DATE",
            value=payment.payment_date
        ))

    if not payment.loan_id or not isinstance(payment.loan_id, str):
        errors.append(ValidationError(
            field=f"{field_prefix}loan_id",
            message=f"{label}: loan ID must be a non-empty string",
            code="INVALID_LOAN_ID",
            value=payment.loan_id
        ))
    elif loan_id is not None and payment.loan_id != loan_id:
        errors.append(ValidationError(
            field=f"{field_prefix}loan_id",
            message=f"{label}: belongs to loan {payment.loan_id}, not {loan_id}",
            code="PAYMENT_LOAN_MISMATCH",
            value=payment.loan_id
        ))

    return errors


def validate_payment_records(payments: Sequence[PaymentRecord],
                             loan_id: Optional[str] = None) -> List[ValidationError]:
    """Validate a payment history, reporting problems for every payment"""
    if not isinstance(payments, (list, tuple)):
        return [ValidationError(
            field="payments",
            message="Payments must be a list",
            code="INVALID_PAYMENTS",
            value=type(payments).__name__
        )]

    errors: List[ValidationError] = []
    for index, payment in enumerate(payments):
        errors.extend(validate_payment_input(
            payment,
            loan_id=loan_id,
            field_prefix=f"payments[{index}].",
            label=f"Payment {index + 1}"
        ))
    return errors


def validate_decimal_conversion(value: Any, field: str) -> List[ValidationError]:
    """Check that a raw value converts to a finite decimal"""
    try:
        to_decimal(value)
    except InvalidDecimal:
        if _is_non_finite(value):
            return [ValidationError(
                field=field,
                message=f"{field} must be a valid number",
                code="INVALID_NUMBER",
                value=value
            )]
        return [ValidationError(
            field=field,
            message=f"{field} cannot be converted to a decimal number",
            code="DECIMAL_CONVERSION_ERROR",
            value=value
        )]
    return []


def _is_non_finite(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (str, float, Decimal)):
        return False
    try:
        return not Decimal(str(value).strip()).is_finite()
    except InvalidOperation:
        return False


def require_valid_loan(loan: LoanCalculationInput) -> None:
    """
    Raise InvalidLoanInput if the loan fails validation

    Used by calculation entry points, which must never run on invalid input.
    """
    errors = validate_loan_input(loan)
    if errors:
        raise InvalidLoanInput(errors)


def require_valid_params(principal: Any, rate: Any, term: Any) -> None:
    errors = validate_calculation_params(principal, rate, term)
    if errors:
        raise InvalidLoanInput(errors, context="Calculation parameters")


def require_valid_payments(payments: Sequence[PaymentRecord], loan_id: Optional[str] = None) -> None:
    errors = validate_payment_records(payments, loan_id)
    if errors:
        raise InvalidLoanInput(errors, context="Payment history")


def strategy_warnings(calculation_type: InterestCalculationType, principal: Decimal,
                      rate: Decimal, term_months: int) -> List[ValidationError]:
    """
    Advisory notes for unusual but valid terms. These never block a
    calculation.
    """
    warnings: List[ValidationError] = []

    if calculation_type == InterestCalculationType.SIMPLE:
        if term_months > SIMPLE_INTEREST_MAX_TYPICAL_TERM:
            warnings.append(ValidationError(
                field="term_months",
                message="Simple interest is typically used for loans of 10 years or less",
                code="SIMPLE_INTEREST_TERM_WARNING",
                value=term_months
            ))

    elif calculation_type == InterestCalculationType.AMORTIZED:
        if term_months < AMORTIZED_MIN_TYPICAL_TERM:
            warnings.append(ValidationError(
                field="term_months",
                message="Amortized loans typically have terms of at least 12 months",
                code="AMORTIZED_MIN_TERM_WARNING",
                value=term_months
            ))

    elif calculation_type == InterestCalculationType.INTEREST_ONLY:
        if rate <= 0:
            warnings.append(ValidationError(
                field="interest_rate",
                message="Interest-only loan at 0% has no periodic payments before the balloon",
                code="INTEREST_ONLY_ZERO_RATE",
                value=rate
            ))
        if term_months > INTEREST_ONLY_MAX_TYPICAL_TERM:
            warnings.append(ValidationError(
                field="term_months",
                message="Interest-only loans are typically limited to 30 years or less",
                code="INTEREST_ONLY_TERM_WARNING",
                value=term_months
            ))
        if principal > INTEREST_ONLY_BALLOON_RISK_PRINCIPAL:
            warnings.append(ValidationError(
                field="principal",
                message="Large interest-only loans carry significant balloon payment risk",
                code="INTEREST_ONLY_BALLOON_RISK",
                value=principal
            ))

    return warnings
