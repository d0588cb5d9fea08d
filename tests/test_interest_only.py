"""
Test suite for interest-only loans

Tests periodic interest payments, the principal balloon and balance tracking
where interest due accrues per scheduled period.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_engine.errors import InvalidLoanInput
from loan_engine.interest_only import (
    calculate_interest_only_balance, calculate_interest_only_details,
    calculate_interest_only_payment, generate_interest_only_schedule
)
from loan_engine.models import (
    InterestCalculationType, LoanCalculationInput, PaymentFrequency, PaymentRecord
)


def make_loan(**overrides) -> LoanCalculationInput:
    values = dict(
        id="IO001",
        principal=Decimal('50000'),
        interest_rate=Decimal('8'),
        start_date=date(2024, 1, 1),
        end_date=date(2029, 1, 1),
        term_months=60,
        interest_calculation_type=InterestCalculationType.INTEREST_ONLY,
        payment_frequency=PaymentFrequency.MONTHLY
    )
    values.update(overrides)
    return LoanCalculationInput(**values)


def payment(amount, payment_date, payment_id="P1"):
    return PaymentRecord(payment_id, Decimal(amount), payment_date, "IO001")


class TestInterestOnlyPayment:
    """Test payment figures"""

    def test_monthly_interest(self):
        result = calculate_interest_only_payment(Decimal('50000'), Decimal('8'), 60)

        assert result.payment_amount == Decimal('333.33')
        assert result.total_payments == 60
        assert result.final_payment == Decimal('50333.33')
        assert result.total_interest == Decimal('19999.80')
        assert result.total_amount == Decimal('69999.80')

    def test_zero_rate(self):
        result = calculate_interest_only_payment(Decimal('50000'), Decimal('0'), 60)

        assert result.payment_amount == Decimal('0.00')
        assert result.final_payment == Decimal('50000.00')

    def test_bi_weekly(self):
        result = calculate_interest_only_payment(
            Decimal('26000'), Decimal('10'), 12, PaymentFrequency.BI_WEEKLY
        )
        assert result.total_payments == 26
        assert result.payment_amount == Decimal('100.00')

    def test_invalid_terms(self):
        with pytest.raises(InvalidLoanInput):
            calculate_interest_only_payment(Decimal('50000'), Decimal('8'), 0)


class TestInterestOnlyDetails:
    """Test the balloon figures"""

    def test_details(self):
        details = calculate_interest_only_details(make_loan())

        assert details.interest_payment == Decimal('333.33')
        assert details.principal_payment == Decimal('50000.00')
        assert details.number_of_payments == 60
        assert details.balloon_payment_date == date(2029, 1, 1)
        assert details.frequency == PaymentFrequency.MONTHLY


class TestInterestOnlySchedule:
    """Test schedule generation"""

    def setup_method(self):
        self.schedule = generate_interest_only_schedule(make_loan())

    def test_interest_only_rows(self):
        assert len(self.schedule) == 60

        for entry in self.schedule[:-1]:
            assert entry.payment_amount == Decimal('333.33')
            assert entry.principal_portion == Decimal('0')
            assert entry.remaining_balance == Decimal('50000.00')

    def test_balloon_row(self):
        last = self.schedule[-1]

        assert last.payment_number == 60
        assert last.due_date == date(2029, 1, 1)
        assert last.payment_amount == Decimal('50333.33')
        assert last.principal_portion == Decimal('50000.00')
        assert last.interest_portion == Decimal('333.33')
        assert last.remaining_balance == Decimal('0')
        assert last.cumulative_interest == Decimal('19999.80')

    def test_cumulative_interest(self):
        assert self.schedule[2].cumulative_interest == Decimal('999.99')


class TestInterestOnlyBalance:
    """Test balance tracking"""

    def test_no_payments_accrues_interest(self):
        result = calculate_interest_only_balance(make_loan(), [], date(2024, 3, 15))

        assert result.current_balance == Decimal('50000.00')
        assert result.outstanding_amount == Decimal('50666.66')
        assert result.next_payment_due == date(2024, 4, 1)

    def test_excess_over_interest_reduces_principal(self):
        payments = [
            payment('333.33', date(2024, 2, 1), "P1"),
            payment('1333.33', date(2024, 3, 1), "P2"),
        ]
        result = calculate_interest_only_balance(make_loan(), payments, date(2024, 3, 15))

        assert result.current_balance == Decimal('49000.00')
        assert result.interest_paid == Decimal('666.66')
        assert result.principal_paid == Decimal('1000.00')
        assert result.total_paid == Decimal('1666.66')
        assert result.payments_count == 2
        assert result.outstanding_amount == Decimal('49000.00')

    def test_catch_up_payment_settles_missed_interest(self):
        """A payment after two missed periods covers both before principal"""
        result = calculate_interest_only_balance(
            make_loan(), [payment('1000', date(2024, 3, 1))], date(2024, 3, 15)
        )

        assert result.interest_paid == Decimal('666.66')
        assert result.principal_paid == Decimal('333.34')
        assert result.current_balance == Decimal('49666.66')

    def test_early_payment_counts_one_period(self):
        result = calculate_interest_only_balance(
            make_loan(), [payment('500', date(2024, 1, 10))], date(2024, 1, 15)
        )

        assert result.interest_paid == Decimal('333.33')
        assert result.principal_paid == Decimal('166.67')

    def test_payoff_clamps_overpayment(self):
        result = calculate_interest_only_balance(
            make_loan(), [payment('60000', date(2024, 2, 1))], date(2024, 3, 15)
        )

        assert result.is_paid_off
        assert result.current_balance == Decimal('0.00')
        assert result.principal_paid == Decimal('50000.00')
        assert result.total_paid == Decimal('60000.00')
        assert result.outstanding_amount == Decimal('0')
        assert result.next_payment_due is None
