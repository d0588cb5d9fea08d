"""
Pydantic schemas for loosely typed calculation input

Form and request payloads carry amounts as strings; these models parse them
into the engine's Decimal based input values.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaValidationError

from .errors import CalculationError
from .models import (
    InterestCalculationType, LoanCalculationInput, PaymentFrequency,
    PaymentRecord, PaymentScheduleOptions, ValidationError
)
from .money import MIN_DECIMAL_PRECISION, CalculationConfig, RoundingMode, decimal_from_string
from .periods import add_months


def _parse_amount(value: str) -> str:
    try:
        decimal_from_string(value)
    except CalculationError:
        raise ValueError(f"'{value}' is not a valid number")
    return value


def _parse_calculation_type(value: str) -> str:
    try:
        return InterestCalculationType.from_value(value).value
    except CalculationError:
        raise ValueError("Calculation type must be SIMPLE, AMORTIZED, or INTEREST_ONLY")


def _parse_frequency(value: str) -> str:
    try:
        return PaymentFrequency.from_value(value).code
    except CalculationError:
        raise ValueError("Payment frequency must be MONTHLY or BI_WEEKLY")


class LoanPaymentFormModel(BaseModel):
    principal: str = Field(..., description="Loan amount, e.g. '250,000.00'")
    interest_rate: str = Field(..., description="Annual rate as percentage, e.g. '6.5'")
    term_months: int = Field(..., description="Loan term in months")
    calculation_type: str = Field("AMORTIZED", description="SIMPLE, AMORTIZED or INTEREST_ONLY")
    payment_frequency: str = Field("MONTHLY", description="MONTHLY or BI_WEEKLY")

    @field_validator('principal', 'interest_rate')
    @classmethod
    def check_amount(cls, value: str) -> str:
        return _parse_amount(value)

    @field_validator('calculation_type')
    @classmethod
    def check_calculation_type(cls, value: str) -> str:
        return _parse_calculation_type(value)

    @field_validator('payment_frequency')
    @classmethod
    def check_payment_frequency(cls, value: str) -> str:
        return _parse_frequency(value)

    def principal_amount(self) -> Decimal:
        return decimal_from_string(self.principal)

    def annual_rate(self) -> Decimal:
        return decimal_from_string(self.interest_rate)

    def interest_calculation_type(self) -> InterestCalculationType:
        return InterestCalculationType.from_value(self.calculation_type)

    def frequency(self) -> PaymentFrequency:
        return PaymentFrequency.from_value(self.payment_frequency)


class LoanInputModel(LoanPaymentFormModel):
    id: str = Field(..., description="Loan identifier")
    start_date: date
    end_date: Optional[date] = None     # Derived from the term when omitted
    balance: Optional[str] = Field(None, description="Current outstanding balance")

    @field_validator('balance')
    @classmethod
    def check_balance(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _parse_amount(value)

    def to_calculation_input(self) -> LoanCalculationInput:
        return LoanCalculationInput(
            id=self.id,
            principal=self.principal_amount(),
            interest_rate=self.annual_rate(),
            start_date=self.start_date,
            end_date=self.end_date or add_months(self.start_date, self.term_months),
            term_months=self.term_months,
            interest_calculation_type=self.interest_calculation_type(),
            payment_frequency=self.frequency(),
            balance=None if self.balance is None else decimal_from_string(self.balance)
        )


class PaymentInputModel(BaseModel):
    id: str
    amount: str = Field(..., description="Decimal amount as string")
    payment_date: date
    loan_id: str

    @field_validator('amount')
    @classmethod
    def check_amount(cls, value: str) -> str:
        return _parse_amount(value)

    def to_payment_record(self) -> PaymentRecord:
        return PaymentRecord(
            id=self.id,
            amount=decimal_from_string(self.amount),
            payment_date=self.payment_date,
            loan_id=self.loan_id
        )


class ScheduleOptionsModel(BaseModel):
    include_past_payments: bool = True
    remaining_only: bool = False
    max_payments: Optional[int] = Field(None, ge=0)
    start_date: Optional[date] = None
    equal_payments: bool = False

    def to_options(self) -> PaymentScheduleOptions:
        return PaymentScheduleOptions(**self.model_dump())


class CalculationConfigModel(BaseModel):
    precision: int = Field(2, ge=0, le=10)
    rounding_mode: RoundingMode = RoundingMode.ROUND_NEAREST
    decimal_precision: int = Field(28, ge=MIN_DECIMAL_PRECISION)

    def to_config(self) -> CalculationConfig:
        return CalculationConfig(
            precision=self.precision,
            rounding_mode=self.rounding_mode,
            decimal_precision=self.decimal_precision
        )


def schema_errors(exc: SchemaValidationError) -> List[ValidationError]:
    """Translate pydantic errors into engine validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "input"
        errors.append(ValidationError(
            field=field,
            message=error.get("msg", "Invalid value"),
            code="INVALID_FORMAT",
            value=error.get("input")
        ))
    return errors
