"""
Calculation Data Model

Enums, input values and result values exchanged with the calculation core.
Inputs are immutable and every result is recomputed per call; nothing here is
cached or persisted by the engine.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar
from enum import Enum

from .errors import UnsupportedCalculationType, UnsupportedPaymentFrequency


T = TypeVar('T')


class InterestCalculationType(Enum):
    """Interest models supported by the engine. This set is closed."""
    SIMPLE = "SIMPLE"                  # Interest fixed upfront (P x r x t)
    AMORTIZED = "AMORTIZED"            # Annuity, fixed periodic payment
    INTEREST_ONLY = "INTEREST_ONLY"    # Periodic interest, balloon principal

    @classmethod
    def from_value(cls, value: Any) -> 'InterestCalculationType':
        """Resolve a member from itself or its (case-insensitive) name"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise UnsupportedCalculationType(value)


class PaymentFrequency(Enum):
    """Payment frequencies with their number of periods per year"""
    MONTHLY = ("MONTHLY", 12)
    BI_WEEKLY = ("BI_WEEKLY", 26)

    def __init__(self, code: str, periods_per_year: int):
        self.code = code
        self.periods_per_year = periods_per_year

    @classmethod
    def from_value(cls, value: Any) -> 'PaymentFrequency':
        """Resolve a member from itself or its (case-insensitive) name"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise UnsupportedPaymentFrequency(value)


class LoanStatus(Enum):
    """Loan lifecycle states as stored by the persistence layer"""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    DEFAULTED = "DEFAULTED"


@dataclass(frozen=True)
class LoanCalculationInput:
    """Loan data needed for calculations"""
    id: str
    principal: Decimal                  # Original loan amount
    interest_rate: Decimal              # Annual rate as percentage, e.g. 5.5 for 5.5%
    start_date: date
    end_date: date
    term_months: int
    interest_calculation_type: InterestCalculationType
    payment_frequency: PaymentFrequency
    balance: Optional[Decimal] = None   # Current outstanding balance, defaults to principal
    status: LoanStatus = LoanStatus.ACTIVE

    def __post_init__(self):
        if self.balance is None:
            object.__setattr__(self, 'balance', self.principal)

    @classmethod
    def from_terms(
        cls,
        principal: Decimal,
        interest_rate: Decimal,
        term_months: int,
        interest_calculation_type: InterestCalculationType = InterestCalculationType.AMORTIZED,
        payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
        start_date: Optional[date] = None,
        loan_id: str = "calculation"
    ) -> 'LoanCalculationInput':
        """
        Build a loan from bare terms

        The end date is derived from the start date (today by default) and
        the term.
        """
        # Imported here because periods imports this module
        from .periods import add_months

        if not start_date:
            start_date = date.today()

        return cls(
            id=loan_id,
            principal=principal,
            interest_rate=interest_rate,
            start_date=start_date,
            end_date=add_months(start_date, term_months),
            term_months=term_months,
            interest_calculation_type=interest_calculation_type,
            payment_frequency=payment_frequency
        )


@dataclass(frozen=True)
class PaymentRecord:
    """A payment recorded against a loan"""
    id: str
    amount: Decimal
    payment_date: date
    loan_id: str


@dataclass(frozen=True)
class PaymentScheduleOptions:
    """Filters applied to a generated schedule"""
    include_past_payments: bool = True
    remaining_only: bool = False
    max_payments: Optional[int] = None
    start_date: Optional[date] = None   # Reference date; date filters are skipped without one
    equal_payments: bool = False        # SIMPLE loans: equal periodic payments instead of one


@dataclass(frozen=True)
class ValidationError:
    """A single structural problem with calculation input"""
    field: str
    message: str
    code: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"field": self.field, "message": self.message, "code": self.code}
        if self.value is not None:
            result["value"] = str(self.value)
        return result


@dataclass
class PaymentCalculation:
    """Periodic payment figures for a loan"""
    payment_amount: Decimal
    total_payments: int
    payment_frequency: PaymentFrequency
    total_interest: Decimal
    total_amount: Decimal
    final_payment: Optional[Decimal] = None  # Terminal amount where it differs (balloon)


@dataclass
class SimpleInterestResult:
    """Simple interest figures (I = P x r x t)"""
    principal: Decimal
    rate: Decimal
    time_in_years: Decimal
    simple_interest: Decimal
    total_amount: Decimal


@dataclass
class InterestOnlyResult:
    """Interest-only payment figures including the balloon"""
    interest_payment: Decimal
    principal_payment: Decimal          # Balloon amount
    frequency: PaymentFrequency
    total_interest: Decimal
    number_of_payments: int
    balloon_payment_date: date


@dataclass
class ScheduleEntry:
    """Single row of a payment schedule"""
    payment_number: int
    due_date: date
    payment_amount: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal
    cumulative_interest: Decimal
    cumulative_principal: Decimal

    @property
    def opening_balance(self) -> Decimal:
        """Balance before this payment was applied"""
        return self.remaining_balance + self.principal_portion


@dataclass
class ScheduleSummary:
    total_interest: Decimal
    total_payments: Decimal             # Sum of all payments over the loan life
    term_months: int


@dataclass
class AmortizationSchedule:
    """Complete payment schedule for a loan"""
    loan_id: str
    periodic_payment: Decimal
    total_payments: int                 # Number of rows after filtering
    frequency: PaymentFrequency
    payments: List[ScheduleEntry]
    summary: ScheduleSummary


@dataclass
class BalanceCalculationResult:
    """Point-in-time balance of a loan after its recorded payments"""
    current_balance: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    total_paid: Decimal
    payments_count: int
    remaining_principal: Decimal
    outstanding_amount: Decimal         # Principal plus fixed or accrued interest still unpaid
    next_payment_due: Optional[date]
    is_paid_off: bool
    as_of_date: date


@dataclass
class PaymentImpactAnalysis:
    """What-if result for a hypothetical additional payment"""
    original_balance: Decimal
    new_balance: Decimal
    principal_reduction: Decimal
    interest_payment: Decimal
    unapplied_amount: Decimal           # Part of the payment beyond what the loan could absorb
    interest_saved: Optional[Decimal] = None
    term_reduction: Optional[int] = None
    new_payoff_date: Optional[date] = None


@dataclass
class PaymentSummary:
    """Current status, remaining obligations and the original schedule"""
    current_balance: Decimal
    total_paid: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    payments_count: int
    is_paid_off: bool
    remaining_principal: Decimal
    remaining_interest: Decimal
    remaining_payments: int
    next_payment_due: Optional[date]
    original_schedule: AmortizationSchedule
    total_interest_original: Decimal
    total_payments_original: Decimal
    percent_paid_off: Decimal
    as_of_date: date


@dataclass
class TimePeriod:
    start_date: date
    end_date: date
    days: int
    months: int                         # Whole calendar months
    years: Decimal


@dataclass
class CalculationResult(Generic[T]):
    """
    Outcome of a convenience API call.

    Either ``data`` is set and ``success`` is True, or ``errors`` lists every
    problem found. ``warnings`` carries non-blocking advisories in both cases.
    """
    success: bool
    data: Optional[T] = None
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T, warnings: Optional[List[ValidationError]] = None) -> 'CalculationResult[T]':
        return cls(success=True, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(cls, errors: List[ValidationError],
             warnings: Optional[List[ValidationError]] = None) -> 'CalculationResult[T]':
        return cls(success=False, errors=list(errors), warnings=list(warnings or []))
