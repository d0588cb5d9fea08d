"""
Amortized Loan Module

Fixed periodic payments under the annuity formula, amortization schedules,
closed-form remaining balances and balance tracking from actual payments.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional, Sequence

from .errors import CalculationError, InvalidLoanInput
from .models import (
    BalanceCalculationResult, LoanCalculationInput, PaymentCalculation,
    PaymentFrequency, PaymentRecord, ScheduleEntry
)
from .money import (
    ONE, ZERO, CalculationConfig, DecimalLike, apply_rounding,
    calculation_context, divide_decimals, resolve_config, sum_decimals, to_decimal
)
from .periods import (
    chronological_payments, next_due_date, payment_due_date, periodic_rate,
    total_payments
)
from .validation import (
    require_valid_loan, require_valid_params, require_valid_payments,
    validate_payment_terms
)


def _annuity_payment(principal: Decimal, rate: Decimal, count: int) -> Decimal:
    """Unrounded payment amount: P * [r(1+r)^n] / [(1+r)^n - 1]"""
    if rate == ZERO:
        # No interest - simple division
        return principal / Decimal(count)

    factor = (ONE + rate) ** count
    return principal * (rate * factor) / (factor - ONE)


def calculate_amortized_payment(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    config: Optional[CalculationConfig] = None
) -> PaymentCalculation:
    """
    Fixed periodic payment of an amortized loan

    Args:
        principal: Loan amount
        annual_rate: Annual rate as percentage, e.g. 6 for 6%
        term_months: Loan term in months
        frequency: Payment frequency
        config: Rounding settings

    Returns:
        PaymentCalculation; total interest is derived from the unrounded
        payment so it does not carry per-period rounding drift

    Raises:
        InvalidLoanInput: If any term is invalid
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    require_valid_params(principal, annual_rate, term_months)
    frequency = PaymentFrequency.from_value(frequency)
    config = resolve_config(config)

    count = total_payments(term_months, frequency)

    with calculation_context(config):
        rate = periodic_rate(annual_rate, frequency)
        exact_payment = _annuity_payment(principal, rate, count)
        total_amount = exact_payment * Decimal(count)

        return PaymentCalculation(
            payment_amount=apply_rounding(exact_payment, config),
            total_payments=count,
            payment_frequency=frequency,
            total_interest=apply_rounding(total_amount - principal, config),
            total_amount=apply_rounding(total_amount, config)
        )


def generate_amortization_schedule(
    loan: LoanCalculationInput,
    config: Optional[CalculationConfig] = None
) -> List[ScheduleEntry]:
    """
    Generate the amortization schedule of a loan

    Every row charges interest on the balance carried into it; the rest of
    the fixed payment repays principal. The final row repays whatever
    principal remains, so the last balance is exactly zero.
    """
    require_valid_loan(loan)
    config = resolve_config(config)
    payment = calculate_amortized_payment(
        loan.principal, loan.interest_rate, loan.term_months, loan.payment_frequency, config
    )
    count = payment.total_payments
    schedule = []

    with calculation_context(config):
        rate = periodic_rate(loan.interest_rate, loan.payment_frequency)
        remaining_balance = apply_rounding(loan.principal, config)
        cumulative_interest = ZERO
        cumulative_principal = ZERO

        for payment_num in range(1, count + 1):
            # Calculate interest on remaining balance
            interest_amount = apply_rounding(remaining_balance * rate, config)

            if payment_num == count:
                # Pay exactly what's left
                principal_amount = remaining_balance
            else:
                principal_amount = min(max(payment.payment_amount - interest_amount, ZERO),
                                       remaining_balance)

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

            # Break if balance is paid off
            if remaining_balance == ZERO:
                break

    return schedule


def calculate_remaining_balance(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    payments_made: int = 0,
    config: Optional[CalculationConfig] = None
) -> Decimal:
    """
    Scheduled balance after a number of payments, in closed form:
    B = P * [(1+r)^n - (1+r)^p] / [(1+r)^n - 1]

    Raises:
        CalculationError: If payments_made is outside 0..n
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    require_valid_params(principal, annual_rate, term_months)
    frequency = PaymentFrequency.from_value(frequency)
    config = resolve_config(config)

    count = total_payments(term_months, frequency)
    if isinstance(payments_made, bool) or not isinstance(payments_made, int) \
            or not 0 <= payments_made <= count:
        raise CalculationError(
            f"Payments made must be between 0 and {count}",
            code="INVALID_PERIOD",
            details={"payments_made": payments_made, "total_payments": count}
        )

    with calculation_context(config):
        rate = periodic_rate(annual_rate, frequency)

        if rate == ZERO:
            balance = principal * Decimal(count - payments_made) / Decimal(count)
        else:
            growth_total = (ONE + rate) ** count
            growth_made = (ONE + rate) ** payments_made
            balance = divide_decimals(principal * (growth_total - growth_made), growth_total - ONE)

        return apply_rounding(max(balance, ZERO), config)


def calculate_principal_from_payment(
    payment_amount: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    config: Optional[CalculationConfig] = None
) -> Decimal:
    """
    Largest principal a periodic payment can amortize over the term:
    P = PMT * [(1+r)^n - 1] / [r(1+r)^n]
    """
    payment_amount = to_decimal(payment_amount)
    annual_rate = to_decimal(annual_rate)
    errors = validate_payment_terms(payment_amount, annual_rate, term_months)
    if errors:
        raise InvalidLoanInput(errors, context="Payment terms")
    frequency = PaymentFrequency.from_value(frequency)
    config = resolve_config(config)

    count = total_payments(term_months, frequency)

    with calculation_context(config):
        rate = periodic_rate(annual_rate, frequency)

        if rate == ZERO:
            principal = payment_amount * Decimal(count)
        else:
            factor = (ONE + rate) ** count
            principal = divide_decimals(payment_amount * (factor - ONE), rate * factor)

        return apply_rounding(principal, config)


def calculate_amortized_balance(
    loan: LoanCalculationInput,
    payments: Sequence[PaymentRecord],
    as_of_date: date,
    config: Optional[CalculationConfig] = None
) -> BalanceCalculationResult:
    """
    Balance of an amortized loan after the given payments

    Each payment first covers interest on the balance it finds, the rest
    reduces principal. Processing stops once the balance reaches zero.
    """
    require_valid_loan(loan)
    require_valid_payments(list(payments), loan.id)
    config = resolve_config(config)
    ordered = chronological_payments(payments)

    with calculation_context(config):
        rate = periodic_rate(loan.interest_rate, loan.payment_frequency)
        balance = apply_rounding(loan.principal, config)
        principal_paid = ZERO
        interest_paid = ZERO
        counted = 0

        for payment in ordered:
            if balance <= ZERO:
                break

            # Same per-period rounding as the schedule rows
            interest_owed = apply_rounding(balance * rate, config)
            interest_amount = min(payment.amount, interest_owed)
            principal_amount = min(max(payment.amount - interest_owed, ZERO), balance)

            balance -= principal_amount
            principal_paid += principal_amount
            interest_paid += interest_amount
            counted += 1

        total_paid = sum_decimals(payment.amount for payment in ordered[:counted])
        current_balance = apply_rounding(balance, config)

    is_paid_off = current_balance == ZERO

    return BalanceCalculationResult(
        current_balance=current_balance,
        principal_paid=apply_rounding(principal_paid, config),
        interest_paid=apply_rounding(interest_paid, config),
        total_paid=apply_rounding(total_paid, config),
        payments_count=counted,
        remaining_principal=current_balance,
        outstanding_amount=current_balance,
        next_payment_due=None if is_paid_off else next_due_date(
            loan.start_date, loan.payment_frequency, loan.term_months, as_of_date
        ),
        is_paid_off=is_paid_off,
        as_of_date=as_of_date
    )
