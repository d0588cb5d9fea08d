"""
Test suite for simple interest loans

Tests I = P x r x t, terminal and equal-installment schedules, and balances
from payment history.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_engine.errors import InvalidLoanInput
from loan_engine.models import (
    InterestCalculationType, LoanCalculationInput, PaymentFrequency, PaymentRecord
)
from loan_engine.money import CalculationConfig, RoundingMode
from loan_engine.simple_interest import (
    calculate_simple_interest, calculate_simple_interest_balance,
    calculate_simple_interest_payment, generate_simple_interest_schedule
)


def make_loan(**overrides) -> LoanCalculationInput:
    values = dict(
        id="SIMPLE001",
        principal=Decimal('10000'),
        interest_rate=Decimal('5'),
        start_date=date(2024, 1, 1),
        end_date=date(2025, 1, 1),
        term_months=12,
        interest_calculation_type=InterestCalculationType.SIMPLE,
        payment_frequency=PaymentFrequency.MONTHLY
    )
    values.update(overrides)
    return LoanCalculationInput(**values)


def payment(amount, payment_date, payment_id="P1"):
    return PaymentRecord(payment_id, Decimal(amount), payment_date, "SIMPLE001")


class TestSimpleInterest:
    """Test the simple interest formula"""

    def test_one_year(self):
        result = calculate_simple_interest(Decimal('10000'), Decimal('5'), 12)

        assert result.simple_interest == Decimal('500.00')
        assert result.total_amount == Decimal('10500.00')
        assert result.time_in_years == Decimal('1')
        assert result.rate == Decimal('5')

    def test_eighteen_months(self):
        result = calculate_simple_interest(Decimal('10000'), Decimal('6'), 18)
        assert result.simple_interest == Decimal('900.00')

    def test_zero_rate(self):
        result = calculate_simple_interest(Decimal('12000'), Decimal('0'), 12)
        assert result.simple_interest == Decimal('0.00')
        assert result.total_amount == Decimal('12000.00')

    def test_rounding_mode(self):
        """1000 x 10% x 1/12 = 8.333..."""
        up = CalculationConfig(rounding_mode=RoundingMode.ROUND_UP)
        down = CalculationConfig(rounding_mode=RoundingMode.ROUND_DOWN)

        assert calculate_simple_interest(Decimal('1000'), Decimal('10'), 1, up).simple_interest == Decimal('8.34')
        assert calculate_simple_interest(Decimal('1000'), Decimal('10'), 1, down).simple_interest == Decimal('8.33')

    def test_invalid_terms(self):
        with pytest.raises(InvalidLoanInput):
            calculate_simple_interest(Decimal('0'), Decimal('5'), 12)


class TestSimpleInterestPayment:
    """Test payment figures"""

    def test_equal_payments(self):
        result = calculate_simple_interest_payment(Decimal('10000'), Decimal('5'), 12)

        assert result.payment_amount == Decimal('875.00')
        assert result.total_payments == 12
        assert result.total_interest == Decimal('500.00')
        assert result.total_amount == Decimal('10500.00')
        assert result.final_payment is None

    def test_single_terminal_payment(self):
        result = calculate_simple_interest_payment(
            Decimal('10000'), Decimal('5'), 12, equal_payments=False
        )
        assert result.payment_amount == Decimal('10500.00')
        assert result.total_payments == 1

    def test_zero_rate_is_principal_over_periods(self):
        result = calculate_simple_interest_payment(Decimal('12000'), Decimal('0'), 12)
        assert result.payment_amount == Decimal('1000.00')

    def test_bi_weekly(self):
        result = calculate_simple_interest_payment(
            Decimal('10000'), Decimal('5'), 12, PaymentFrequency.BI_WEEKLY
        )
        assert result.total_payments == 26
        assert result.payment_amount == Decimal('403.85')


class TestSimpleInterestSchedule:
    """Test schedule generation"""

    def test_terminal_schedule(self):
        schedule = generate_simple_interest_schedule(make_loan())

        assert len(schedule) == 1
        entry = schedule[0]
        assert entry.due_date == date(2025, 1, 1)
        assert entry.payment_amount == Decimal('10500.00')
        assert entry.principal_portion == Decimal('10000.00')
        assert entry.interest_portion == Decimal('500.00')
        assert entry.remaining_balance == Decimal('0')

    def test_equal_payment_schedule(self):
        schedule = generate_simple_interest_schedule(make_loan(), equal_payments=True)

        assert len(schedule) == 12
        assert schedule[0].principal_portion == Decimal('833.33')
        assert schedule[0].interest_portion == Decimal('41.67')
        assert schedule[0].remaining_balance == Decimal('9166.67')

        # Final row absorbs the rounding remainder
        last = schedule[-1]
        assert last.principal_portion == Decimal('833.37')
        assert last.interest_portion == Decimal('41.63')
        assert last.remaining_balance == Decimal('0.00')
        assert last.cumulative_principal == Decimal('10000.00')
        assert last.cumulative_interest == Decimal('500.00')

    def test_rows_are_consistent(self):
        for entry in generate_simple_interest_schedule(make_loan(), equal_payments=True):
            assert entry.payment_amount == entry.principal_portion + entry.interest_portion


class TestSimpleInterestBalance:
    """Test balances from payment history"""

    def test_no_payments(self):
        result = calculate_simple_interest_balance(make_loan(), [], date(2024, 3, 15))

        assert result.current_balance == Decimal('10000.00')
        assert result.outstanding_amount == Decimal('10500.00')
        assert result.interest_paid == Decimal('0.00')
        assert result.payments_count == 0
        assert not result.is_paid_off
        assert result.next_payment_due == date(2024, 4, 1)

    def test_interest_settled_first(self):
        result = calculate_simple_interest_balance(
            make_loan(), [payment('600', date(2024, 2, 1))], date(2024, 3, 15)
        )

        assert result.interest_paid == Decimal('500.00')
        assert result.principal_paid == Decimal('100.00')
        assert result.current_balance == Decimal('9900.00')
        assert result.outstanding_amount == Decimal('9900.00')

    def test_partial_interest(self):
        result = calculate_simple_interest_balance(
            make_loan(), [payment('300', date(2024, 2, 1))], date(2024, 3, 15)
        )

        assert result.interest_paid == Decimal('300.00')
        assert result.principal_paid == Decimal('0.00')
        assert result.current_balance == Decimal('10000.00')
        assert result.outstanding_amount == Decimal('10200.00')

    def test_overpayment_is_clamped(self):
        result = calculate_simple_interest_balance(
            make_loan(), [payment('11000', date(2024, 2, 1))], date(2024, 3, 15)
        )

        assert result.is_paid_off
        assert result.current_balance == Decimal('0.00')
        assert result.outstanding_amount == Decimal('0')
        assert result.principal_paid == Decimal('10000.00')
        assert result.total_paid == Decimal('11000.00')
        assert result.next_payment_due is None

    def test_payment_for_other_loan_rejected(self):
        other = PaymentRecord("P1", Decimal('100'), date(2024, 2, 1), "OTHER")
        with pytest.raises(InvalidLoanInput) as exc_info:
            calculate_simple_interest_balance(make_loan(), [other], date(2024, 3, 15))
        assert exc_info.value.errors[0].code == "PAYMENT_LOAN_MISMATCH"
