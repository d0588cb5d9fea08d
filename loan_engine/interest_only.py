"""
Interest-Only Loan Module

Periodic payments cover interest on the full principal; the principal falls
due as a balloon with the final payment.
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional, Sequence

from .models import (
    BalanceCalculationResult, InterestOnlyResult, LoanCalculationInput,
    PaymentCalculation, PaymentFrequency, PaymentRecord, ScheduleEntry
)
from .money import (
    ZERO, CalculationConfig, DecimalLike, apply_rounding, calculation_context,
    resolve_config, to_decimal
)
from .periods import (
    as_date, chronological_payments, next_due_date, payment_due_date,
    periodic_rate, periods_elapsed, total_payments
)
from .validation import require_valid_loan, require_valid_params, require_valid_payments


def _interest_payment(principal: Decimal, annual_rate: Decimal, frequency: PaymentFrequency,
                      config: CalculationConfig) -> Decimal:
    with calculation_context(config):
        return apply_rounding(principal * periodic_rate(annual_rate, frequency), config)


def calculate_interest_only_payment(
    principal: DecimalLike,
    annual_rate: DecimalLike,
    term_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
    config: Optional[CalculationConfig] = None
) -> PaymentCalculation:
    """
    Periodic payment of an interest-only loan

    Returns:
        PaymentCalculation whose final_payment is the last interest payment
        plus the principal balloon
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    require_valid_params(principal, annual_rate, term_months)
    frequency = PaymentFrequency.from_value(frequency)
    config = resolve_config(config)

    count = total_payments(term_months, frequency)
    interest_payment = _interest_payment(principal, annual_rate, frequency, config)
    total_interest = interest_payment * count
    rounded_principal = apply_rounding(principal, config)

    return PaymentCalculation(
        payment_amount=interest_payment,
        total_payments=count,
        payment_frequency=frequency,
        total_interest=total_interest,
        total_amount=rounded_principal + total_interest,
        final_payment=interest_payment + rounded_principal
    )


def calculate_interest_only_details(
    loan: LoanCalculationInput,
    config: Optional[CalculationConfig] = None
) -> InterestOnlyResult:
    """Interest-only figures for a loan, including when the balloon falls due"""
    require_valid_loan(loan)
    config = resolve_config(config)
    payment = calculate_interest_only_payment(
        loan.principal, loan.interest_rate, loan.term_months, loan.payment_frequency, config
    )

    return InterestOnlyResult(
        interest_payment=payment.payment_amount,
        principal_payment=apply_rounding(loan.principal, config),
        frequency=payment.payment_frequency,
        total_interest=payment.total_interest,
        number_of_payments=payment.total_payments,
        balloon_payment_date=payment_due_date(
            loan.start_date, loan.payment_frequency, payment.total_payments
        )
    )


def generate_interest_only_schedule(
    loan: LoanCalculationInput,
    config: Optional[CalculationConfig] = None
) -> List[ScheduleEntry]:
    """
    Generate an interest-only schedule (interest every period, principal at end)
    """
    details = calculate_interest_only_details(loan, config)
    principal = details.principal_payment
    interest_payment = details.interest_payment
    count = details.number_of_payments
    schedule = []

    # Interest-only payments for all but last payment
    for payment_num in range(1, count):
        schedule.append(ScheduleEntry(
            payment_number=payment_num,
            due_date=payment_due_date(loan.start_date, loan.payment_frequency, payment_num),
            payment_amount=interest_payment,
            principal_portion=ZERO,
            interest_portion=interest_payment,
            remaining_balance=principal,
            cumulative_interest=interest_payment * payment_num,
            cumulative_principal=ZERO
        ))

    # Final payment includes all principal plus final interest
    schedule.append(ScheduleEntry(
        payment_number=count,
        due_date=details.balloon_payment_date,
        payment_amount=principal + interest_payment,
        principal_portion=principal,
        interest_portion=interest_payment,
        remaining_balance=ZERO,
        cumulative_interest=interest_payment * count,
        cumulative_principal=principal
    ))

    return schedule


def calculate_interest_only_balance(
    loan: LoanCalculationInput,
    payments: Sequence[PaymentRecord],
    as_of_date: date,
    config: Optional[CalculationConfig] = None
) -> BalanceCalculationResult:
    """
    Balance of an interest-only loan after the given payments

    Interest is due one periodic amount per scheduled period. Each payment
    first settles interest due up to that payment (at least one period per
    payment made), anything beyond reduces principal. Overpayment past the
    remaining principal is counted in total_paid but reduces nothing further.
    """
    require_valid_loan(loan)
    require_valid_payments(list(payments), loan.id)
    config = resolve_config(config)
    ordered = chronological_payments(payments)

    details = calculate_interest_only_details(loan, config)
    interest_payment = details.interest_payment
    count = details.number_of_payments

    balance = details.principal_payment
    principal_paid = ZERO
    interest_paid = ZERO
    total_paid = ZERO

    with calculation_context(config):
        for number, payment in enumerate(ordered, start=1):
            amount = apply_rounding(payment.amount, config)
            total_paid += amount

            elapsed = periods_elapsed(loan.start_date, loan.payment_frequency,
                                      loan.term_months, as_date(payment.payment_date))
            interest_due = interest_payment * min(count, max(number, elapsed))
            interest_amount = min(amount, max(interest_due - interest_paid, ZERO))
            principal_amount = min(amount - interest_amount, balance)

            interest_paid += interest_amount
            principal_paid += principal_amount
            balance -= principal_amount

        if balance == ZERO:
            unpaid_interest = ZERO
        else:
            elapsed = periods_elapsed(loan.start_date, loan.payment_frequency,
                                      loan.term_months, as_of_date)
            unpaid_interest = max(interest_payment * elapsed - interest_paid, ZERO)

    is_paid_off = balance == ZERO

    return BalanceCalculationResult(
        current_balance=balance,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        total_paid=total_paid,
        payments_count=len(ordered),
        remaining_principal=balance,
        outstanding_amount=balance + unpaid_interest,
        next_payment_due=None if is_paid_off else next_due_date(
            loan.start_date, loan.payment_frequency, loan.term_months, as_of_date
        ),
        is_paid_off=is_paid_off,
        as_of_date=as_of_date
    )
