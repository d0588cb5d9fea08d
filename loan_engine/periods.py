"""
Payment Period Math

Periods per year, periodic rates, payment counts and payment due dates for
the supported payment frequencies.
"""

from decimal import Decimal
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional
import calendar

from .errors import CalculationError
from .models import PaymentFrequency, PaymentRecord, TimePeriod
from .money import HUNDRED, to_decimal


def periods_per_year(frequency: Any) -> int:
    """
    Number of payment periods per year

    Raises:
        UnsupportedPaymentFrequency: If the frequency is not recognised
    """
    return PaymentFrequency.from_value(frequency).periods_per_year


def periodic_rate(annual_rate_percent: Any, frequency: Any) -> Decimal:
    """
    Convert an annual percentage rate to the rate per payment period

    Args:
        annual_rate_percent: Annual rate as percentage, e.g. 6 for 6%
        frequency: Payment frequency

    Returns:
        Periodic rate as a fraction, e.g. 0.005 for 6% paid monthly
    """
    per_year = periods_per_year(frequency)
    return to_decimal(annual_rate_percent) / HUNDRED / Decimal(per_year)


def total_payments(term_months: int, frequency: Any) -> int:
    """
    Total number of payments over a term: ceil(term_months / 12 x periods per year)
    """
    if isinstance(term_months, bool) or not isinstance(term_months, int):
        raise CalculationError(f"Term must be a whole number of months, got {term_months!r}",
                               code="INVALID_TERM")
    per_year = periods_per_year(frequency)
    # Integer ceiling division keeps the count exact
    return -(-term_months * per_year // 12)


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def payment_due_date(start_date: date, frequency: Any, payment_number: int) -> date:
    """
    Due date of the nth payment, counted from the loan start date

    Each date is derived from the start date directly so month-end clamping
    never accumulates (Jan 31 -> Feb 29 -> Mar 31).
    """
    frequency = PaymentFrequency.from_value(frequency)
    if frequency == PaymentFrequency.MONTHLY:
        return add_months(start_date, payment_number)
    elif frequency == PaymentFrequency.BI_WEEKLY:
        return start_date + timedelta(weeks=2 * payment_number)
    else:
        raise CalculationError(f"No due date rule for {frequency}", code="UNSUPPORTED_PAYMENT_FREQUENCY")


def generate_payment_dates(start_date: date, frequency: Any, term_months: int) -> List[date]:
    """All payment due dates over the loan term"""
    count = total_payments(term_months, frequency)
    return [payment_due_date(start_date, frequency, number) for number in range(1, count + 1)]


def periods_elapsed(start_date: date, frequency: Any, term_months: int, as_of_date: date) -> int:
    """Number of scheduled payments due on or before a date"""
    elapsed = 0
    for due_date in generate_payment_dates(start_date, frequency, term_months):
        if due_date > as_of_date:
            break
        elapsed += 1
    return elapsed


def months_between(start_date: date, end_date: date) -> int:
    """Whole calendar months from start_date to end_date"""
    if end_date < start_date:
        return -months_between(end_date, start_date)

    months = (end_date.year - start_date.year) * 12 + end_date.month - start_date.month
    if add_months(start_date, months) > end_date:
        months -= 1
    return months


def calculate_time_period(start_date: date, end_date: date) -> TimePeriod:
    """Length of a period in days, whole months and years"""
    months = months_between(start_date, end_date)
    return TimePeriod(
        start_date=start_date,
        end_date=end_date,
        days=(end_date - start_date).days,
        months=months,
        years=Decimal(months) / Decimal(12)
    )


def as_date(value: date) -> date:
    """Drop the time part of a datetime"""
    return value.date() if isinstance(value, datetime) else value


def chronological_payments(payments: Iterable[PaymentRecord]) -> List[PaymentRecord]:
    """
    Payments ordered by date. Payments sharing a date keep their input order.
    """
    return sorted(payments, key=lambda payment: as_date(payment.payment_date))


def next_due_date(start_date: date, frequency: Any, term_months: int,
                  as_of_date: date) -> Optional[date]:
    """
    First scheduled due date after as_of_date

    Once the maturity date has passed the last due date is returned, since
    the loan is overdue from then on.
    """
    due_dates = generate_payment_dates(start_date, frequency, term_months)
    for due_date in due_dates:
        if due_date > as_of_date:
            return due_date
    return due_dates[-1] if due_dates else None
