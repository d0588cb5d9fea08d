"""
Simple Interest Module

Interest fixed upfront on the original principal (I = P x r x t). The loan is
repaid either as one terminal payment or in equal periodic installments.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional, Sequence

from .models import (
    BalanceCalculationResult, LoanCalculationInput, PaymentCalculation,
    PaymentFrequency, PaymentRecord, ScheduleEntry, SimpleInterestResult
)
from .money import (
    HUNDRED, ZERO, CalculationConfig, DecimalLike, apply_rounding,
    calculation_context, resolve_config, sum_decimals, to_decimal
)
from .periods import (
    chronological_payments, next_due_date, payment_due_date, total_payments
)
from .validation import require_valid_loan, require_valid_params, require_valid_payments


def _interest_amount(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    time_in_years = Decimal(term_months) / Decimal('12')
    return principal * (annual_rate / HUNDRED) * time_in_years


def calculate_simple_interest(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    config: Optional[CalculationConfig] = None
) -> SimpleInterestResult:
    """
    Calculate simple interest: I = P x r x t

    Args:
        principal: Loan amount
        annual_rate: Annual rate as percentage, e.g. 5 for 5%
        term_months: Loan term in months
        config: Rounding settings

    Returns:
        SimpleInterestResult with the rounded interest and total amount

    Raises:
        InvalidLoanInput: If any term is invalid
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    require_valid_params(principal, annual_rate, term_months)
    config = resolve_config(config)

    with calculation_context(config):
        time_in_years = Decimal(term_months) / Decimal('12')
        interest = apply_rounding(_interest_amount(principal, annual_rate, term_months), config)
        rounded_principal = apply_rounding(principal, config)

        return SimpleInterestResult(
            principal=rounded_principal,
            rate=annual_rate,
            time_in_years=time_in_years,
            simple_interest=interest,
            total_amount=rounded_principal + interest
        )


def calculate_simple_interest_payment(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    equal_payments: bool = True,
    config: Optional[CalculationConfig] = None
) -> PaymentCalculation:
    """
    Payment figures for a simple interest loan

    With equal_payments the total amount is spread over every period of the
    term, otherwise it falls due in a single terminal payment.
    """
    frequency = PaymentFrequency.from_value(frequency)
    result = calculate_simple_interest(principal, annual_rate, term_months, config)
    config = resolve_config(config)

    if not equal_payments:
        return PaymentCalculation(
            payment_amount=result.total_amount,
            total_payments=1,
            payment_frequency=frequency,
            total_interest=result.simple_interest,
            total_amount=result.total_amount
        )

    count = total_payments(term_months, frequency)
    with calculation_context(config):
        payment_amount = apply_rounding(result.total_amount / Decimal(count), config)

    return PaymentCalculation(
        payment_amount=payment_amount,
        total_payments=count,
        payment_frequency=frequency,
        total_interest=result.simple_interest,
        total_amount=result.total_amount
    )


def generate_simple_interest_schedule(
    loan: LoanCalculationInput,
    equal_payments: bool = False,
    config: Optional[CalculationConfig] = None
) -> List[ScheduleEntry]:
    """
    Payment schedule for a simple interest loan

    By default the schedule holds one row due at maturity. With
    equal_payments every period repays an equal share of principal and
    interest, and the final row absorbs the rounding remainder so the
    balance ends at exactly zero.
    """
    require_valid_loan(loan)
    config = resolve_config(config)
    result = calculate_simple_interest(loan.principal, loan.interest_rate, loan.term_months, config)
    count = total_payments(loan.term_months, loan.payment_frequency)

    if not equal_payments:
        return [ScheduleEntry(
            payment_number=1,
            due_date=payment_due_date(loan.start_date, loan.payment_frequency, count),
            payment_amount=result.total_amount,
            principal_portion=result.principal,
            interest_portion=result.simple_interest,
            remaining_balance=ZERO,
            cumulative_interest=result.simple_interest,
            cumulative_principal=result.principal
        )]

    schedule = []

    with calculation_context(config):
        principal_step = apply_rounding(result.principal / Decimal(count), config)
        interest_step = apply_rounding(result.simple_interest / Decimal(count), config)

        remaining_balance = result.principal
        cumulative_interest = ZERO
        cumulative_principal = ZERO

        for payment_num in range(1, count + 1):
            if payment_num == count:
                # Final payment settles whatever rounding left behind
                principal_amount = remaining_balance
                interest_amount = result.simple_interest - cumulative_interest
            else:
                principal_amount = min(principal_step, remaining_balance)
                interest_amount = min(interest_step, result.simple_interest - cumulative_interest)

            remaining_balance -= principal_amount
            cumulative_interest += interest_amount
            cumulative_principal += principal_amount

            schedule.append(ScheduleEntry(
                payment_number=payment_num,
                due_date=payment_due_date(loan.start_date, loan.payment_frequency, payment_num),
                payment_amount=principal_amount + interest_amount,
                principal_portion=principal_amount,
                interest_portion=interest_amount,
                remaining_balance=remaining_balance,
                cumulative_interest=cumulative_interest,
                cumulative_principal=cumulative_principal
            ))

    return schedule


def calculate_simple_interest_balance(
    loan: LoanCalculationInput,
    payments: Sequence[PaymentRecord],
    as_of_date: date,
    config: Optional[CalculationConfig] = None
) -> BalanceCalculationResult:
    """
    Balance of a simple interest loan after the given payments

    Payments settle the fixed interest first and then principal. Amounts
    beyond principal plus interest are counted in total_paid but reduce
    nothing further.
    """
    require_valid_loan(loan)
    require_valid_payments(list(payments), loan.id)
    config = resolve_config(config)
    result = calculate_simple_interest(loan.principal, loan.interest_rate, loan.term_months, config)
    ordered = chronological_payments(payments)

    with calculation_context(config):
        total_paid = apply_rounding(sum_decimals(payment.amount for payment in ordered), config)

        interest_paid = min(total_paid, result.simple_interest)
        principal_paid = min(result.principal, total_paid - interest_paid)
        current_balance = result.principal - principal_paid
        outstanding = max(ZERO, result.total_amount - total_paid)

    is_paid_off = current_balance == ZERO and outstanding == ZERO

    return BalanceCalculationResult(
        current_balance=current_balance,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        total_paid=total_paid,
        payments_count=len(ordered),
        remaining_principal=current_balance,
        outstanding_amount=outstanding,
        next_payment_due=None if is_paid_off else next_due_date(
            loan.start_date, loan.payment_frequency, loan.term_months, as_of_date
        ),
        is_paid_off=is_paid_off,
        as_of_date=as_of_date
    )
