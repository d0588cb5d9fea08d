"""
Payment Schedule Module

Single entry point over the interest strategies: schedule generation with
filtering, current balance from payment history, what-if payment impact and
the payment summary. Dispatches on the loan's calculation type.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional, Sequence, Tuple
import logging

from . import amortized, interest_only, simple_interest
from .errors import CalculationError, InvalidLoanInput, UnsupportedCalculationType
from .logging_config import log_calculation
from .models import (
    AmortizationSchedule, BalanceCalculationResult, InterestCalculationType,
    LoanCalculationInput, PaymentImpactAnalysis, PaymentRecord,
    PaymentScheduleOptions, PaymentSummary, ScheduleEntry, ScheduleSummary,
    ValidationError
)
from .money import (
    HUNDRED, ZERO, CalculationConfig, DecimalLike, apply_rounding,
    calculation_context, divide_decimals, resolve_config, sum_decimals,
    to_decimal
)
from .periods import as_date, chronological_payments
from .validation import require_valid_payments, validate_loan_input


logger = logging.getLogger(__name__)


def _require_valid_loan(loan: LoanCalculationInput, calculation: str) -> None:
    errors = validate_loan_input(loan)
    if errors:
        log_calculation(
            logger, "warning", "Rejected invalid loan input",
            loan_id=getattr(loan, "id", None), calculation=calculation,
            extra={"codes": [error.code for error in errors]}
        )
        raise InvalidLoanInput(errors)


def _full_schedule(
    loan: LoanCalculationInput,
    equal_payments: bool,
    config: CalculationConfig
) -> Tuple[List[ScheduleEntry], Decimal]:
    """Unfiltered schedule rows and the periodic payment for the loan's type"""
    calculation_type = loan.interest_calculation_type

    if calculation_type == InterestCalculationType.AMORTIZED:
        rows = amortized.generate_amortization_schedule(loan, config)
        periodic_payment = amortized.calculate_amortized_payment(
            loan.principal, loan.interest_rate, loan.term_months,
            loan.payment_frequency, config
        ).payment_amount
    elif calculation_type == InterestCalculationType.INTEREST_ONLY:
        rows = interest_only.generate_interest_only_schedule(loan, config)
        periodic_payment = rows[0].interest_portion
    elif calculation_type == InterestCalculationType.SIMPLE:
        rows = simple_interest.generate_simple_interest_schedule(loan, equal_payments, config)
        periodic_payment = rows[0].payment_amount if equal_payments else rows[-1].payment_amount
    else:
        raise UnsupportedCalculationType(calculation_type)

    return rows, periodic_payment


def _filter_rows(rows: List[ScheduleEntry], options: PaymentScheduleOptions) -> List[ScheduleEntry]:
    if options.max_payments is not None and options.max_payments < 0:
        raise CalculationError("max_payments cannot be negative", code="INVALID_OPTIONS",
                               details={"max_payments": options.max_payments})

    # Date filters need an explicit reference date
    if options.start_date:
        reference_date = as_date(options.start_date)
        if options.remaining_only:
            rows = [row for row in rows if row.due_date > reference_date]
        elif not options.include_past_payments:
            rows = [row for row in rows if row.due_date >= reference_date]

    if options.max_payments is not None:
        rows = rows[:options.max_payments]

    return rows


def generate_payment_schedule(
    loan: LoanCalculationInput,
    options: Optional[PaymentScheduleOptions] = None,
    config: Optional[CalculationConfig] = None
) -> AmortizationSchedule:
    """
    Generate the payment schedule of a loan

    Args:
        loan: Loan to schedule
        options: Row filters; the summary always covers the full schedule
        config: Rounding settings

    Returns:
        AmortizationSchedule with filtered rows and a full-schedule summary

    Raises:
        InvalidLoanInput: If the loan fails validation
        UnsupportedCalculationType: If no strategy handles the loan's type
    """
    options = options or PaymentScheduleOptions()
    config = resolve_config(config)
    _require_valid_loan(loan, "schedule")

    rows, periodic_payment = _full_schedule(loan, options.equal_payments, config)
    filtered = _filter_rows(rows, options)

    summary = ScheduleSummary(
        total_interest=sum_decimals(row.interest_portion for row in rows),
        total_payments=sum_decimals(row.payment_amount for row in rows),
        term_months=loan.term_months
    )

    log_calculation(
        logger, "debug", "Generated payment schedule",
        loan_id=loan.id, calculation="schedule",
        extra={"type": loan.interest_calculation_type.value, "rows": len(filtered)}
    )

    return AmortizationSchedule(
        loan_id=loan.id,
        periodic_payment=periodic_payment,
        total_payments=len(filtered),
        frequency=loan.payment_frequency,
        payments=filtered,
        summary=summary
    )


def calculate_current_balance(
    loan: LoanCalculationInput,
    payments: Optional[Sequence[PaymentRecord]] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> BalanceCalculationResult:
    """
    Balance of a loan as of a date, from its payment history

    Payments dated after as_of_date are ignored. The rest are applied in
    date order; payments sharing a date keep their given order.

    Raises:
        InvalidLoanInput: If the loan or any payment fails validation
        UnsupportedCalculationType: If no strategy handles the loan's type
    """
    config = resolve_config(config)
    _require_valid_loan(loan, "balance")
    payments = list(payments or [])
    require_valid_payments(payments, loan.id)

    as_of_date = as_date(as_of_date) if as_of_date else date.today()
    counted = chronological_payments(
        payment for payment in payments if as_date(payment.payment_date) <= as_of_date
    )

    calculation_type = loan.interest_calculation_type
    if calculation_type == InterestCalculationType.AMORTIZED:
        result = amortized.calculate_amortized_balance(loan, counted, as_of_date, config)
    elif calculation_type == InterestCalculationType.INTEREST_ONLY:
        result = interest_only.calculate_interest_only_balance(loan, counted, as_of_date, config)
    elif calculation_type == InterestCalculationType.SIMPLE:
        result = simple_interest.calculate_simple_interest_balance(loan, counted, as_of_date, config)
    else:
        raise UnsupportedCalculationType(calculation_type)

    log_calculation(
        logger, "debug", "Calculated current balance",
        loan_id=loan.id, calculation="balance",
        extra={"payments": len(counted), "is_paid_off": result.is_paid_off}
    )

    return result


def _periods_before(rows: List[ScheduleEntry], balance: Decimal) -> int:
    """Scheduled payments needed before the schedule reaches a balance"""
    return sum(1 for row in rows if row.remaining_balance > balance)


def analyze_payment_impact(
    loan: LoanCalculationInput,
    payment_amount: DecimalLike,
    payment_date: Optional[date] = None,
    existing_payments: Optional[Sequence[PaymentRecord]] = None,
    config: Optional[CalculationConfig] = None
) -> PaymentImpactAnalysis:
    """
    What-if analysis of an additional payment

    The payment is applied after every existing payment up to its date.
    For amortized loans the new balance is located on the original schedule
    to estimate how many periods it removes and the interest those periods
    would have carried.

    Raises:
        InvalidLoanInput: If the amount is not positive or any input is invalid
    """
    config = resolve_config(config)
    amount = to_decimal(payment_amount)
    if amount <= ZERO:
        raise InvalidLoanInput([ValidationError(
            field="payment_amount",
            message="Payment amount must be greater than 0",
            code="INVALID_PAYMENT_AMOUNT",
            value=amount
        )], context="Payment")

    payment_date = as_date(payment_date) if payment_date else date.today()
    existing = list(existing_payments or [])

    before = calculate_current_balance(loan, existing, payment_date, config)
    simulated = PaymentRecord(
        id="simulated-payment",
        amount=amount,
        payment_date=payment_date,
        loan_id=loan.id
    )
    after = calculate_current_balance(loan, existing + [simulated], payment_date, config)

    with calculation_context(config):
        principal_reduction = before.remaining_principal - after.remaining_principal
        interest_payment = after.interest_paid - before.interest_paid
        unapplied = max(apply_rounding(amount, config) - principal_reduction - interest_payment, ZERO)

    analysis = PaymentImpactAnalysis(
        original_balance=before.current_balance,
        new_balance=after.current_balance,
        principal_reduction=principal_reduction,
        interest_payment=interest_payment,
        unapplied_amount=unapplied
    )

    if loan.interest_calculation_type == InterestCalculationType.AMORTIZED:
        rows = amortized.generate_amortization_schedule(loan, config)
        periods_before = _periods_before(rows, before.current_balance)

        if after.is_paid_off:
            term_reduction = len(rows) - periods_before
            new_payoff_date = payment_date
        else:
            term_reduction = max(_periods_before(rows, after.current_balance) - periods_before, 0)
            new_payoff_date = rows[len(rows) - 1 - term_reduction].due_date

        skipped = rows[periods_before:periods_before + term_reduction]
        analysis.term_reduction = term_reduction
        analysis.interest_saved = sum_decimals(row.interest_portion for row in skipped)
        analysis.new_payoff_date = new_payoff_date

    log_calculation(
        logger, "info", "Analyzed payment impact",
        loan_id=loan.id, calculation="payment_impact",
        extra={"amount": str(amount), "term_reduction": analysis.term_reduction}
    )

    return analysis


def calculate_next_payment_due(
    loan: LoanCalculationInput,
    payments: Optional[Sequence[PaymentRecord]] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> Optional[date]:
    """Next scheduled due date after as_of_date, or None once paid off"""
    return calculate_current_balance(loan, payments, as_of_date, config).next_payment_due


def _remaining_rows(
    loan: LoanCalculationInput,
    rows: List[ScheduleEntry],
    balance: BalanceCalculationResult
) -> List[ScheduleEntry]:
    """Schedule rows still ahead of the borrower"""
    if balance.is_paid_off:
        return []

    if loan.interest_calculation_type == InterestCalculationType.AMORTIZED:
        remaining = [row for row in rows if row.opening_balance <= balance.current_balance]
    else:
        remaining = [row for row in rows if row.due_date > balance.as_of_date]

    # An unpaid loan past maturity still owes its final payment
    return remaining or rows[-1:]


def calculate_remaining_payments(
    loan: LoanCalculationInput,
    payments: Optional[Sequence[PaymentRecord]] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> int:
    """Number of scheduled payments still ahead, zero once paid off"""
    config = resolve_config(config)
    balance = calculate_current_balance(loan, payments, as_of_date, config)
    rows, _ = _full_schedule(loan, False, config)
    return len(_remaining_rows(loan, rows, balance))


def _remaining_interest(
    loan: LoanCalculationInput,
    rows: List[ScheduleEntry],
    balance: BalanceCalculationResult,
    config: CalculationConfig
) -> Decimal:
    if balance.is_paid_off:
        return ZERO

    if loan.interest_calculation_type == InterestCalculationType.SIMPLE:
        total_interest = sum_decimals(row.interest_portion for row in rows)
        return max(total_interest - balance.interest_paid, ZERO)

    future_interest = sum_decimals(
        row.interest_portion for row in _remaining_rows(loan, rows, balance)
    )
    # Interest already due but not yet paid
    accrued = balance.outstanding_amount - balance.current_balance
    return apply_rounding(future_interest + accrued, config)


def calculate_remaining_interest(
    loan: LoanCalculationInput,
    payments: Optional[Sequence[PaymentRecord]] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> Decimal:
    """Interest still expected over the rest of the loan, zero once paid off"""
    config = resolve_config(config)
    balance = calculate_current_balance(loan, payments, as_of_date, config)
    rows, _ = _full_schedule(loan, False, config)
    return _remaining_interest(loan, rows, balance, config)


def generate_payment_summary(
    loan: LoanCalculationInput,
    payments: Optional[Sequence[PaymentRecord]] = None,
    as_of_date: Optional[date] = None,
    config: Optional[CalculationConfig] = None
) -> PaymentSummary:
    """
    Current status, remaining obligations and original schedule of a loan
    """
    config = resolve_config(config)
    balance = calculate_current_balance(loan, payments, as_of_date, config)
    schedule = generate_payment_schedule(loan, config=config)
    rows = schedule.payments

    with calculation_context(config):
        principal = apply_rounding(loan.principal, config)
        ratio = divide_decimals(balance.principal_paid, principal)
        percent_paid_off = apply_rounding(ratio * HUNDRED, config)

    log_calculation(
        logger, "debug", "Generated payment summary",
        loan_id=loan.id, calculation="summary"
    )

    return PaymentSummary(
        current_balance=balance.current_balance,
        total_paid=balance.total_paid,
        principal_paid=balance.principal_paid,
        interest_paid=balance.interest_paid,
        payments_count=balance.payments_count,
        is_paid_off=balance.is_paid_off,
        remaining_principal=balance.remaining_principal,
        remaining_interest=_remaining_interest(loan, rows, balance, config),
        remaining_payments=len(_remaining_rows(loan, rows, balance)),
        next_payment_due=balance.next_payment_due,
        original_schedule=schedule,
        total_interest_original=schedule.summary.total_interest,
        total_payments_original=schedule.summary.total_payments,
        percent_paid_off=percent_paid_off,
        as_of_date=balance.as_of_date
    )
