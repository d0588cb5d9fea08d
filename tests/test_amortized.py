"""
Test suite for amortized loans

Tests the annuity payment formula, amortization schedules, closed-form
remaining balances, reverse principal calculation and balance tracking.
All financial math must be precise to the cent.
"""

import pytest
from decimal import Decimal
from datetime import date

from loan_engine.amortized import (
    calculate_amortized_balance, calculate_amortized_payment,
    calculate_principal_from_payment, calculate_remaining_balance,
    generate_amortization_schedule
)
from loan_engine.errors import CalculationError, InvalidLoanInput
from loan_engine.models import (
    InterestCalculationType, LoanCalculationInput, PaymentFrequency, PaymentRecord
)
from loan_engine.money import CalculationConfig, RoundingMode, sum_decimals


def make_loan(**overrides) -> LoanCalculationInput:
    values = dict(
        id="MORTGAGE001",
        principal=Decimal('100000'),
        interest_rate=Decimal('6'),
        start_date=date(2024, 1, 1),
        end_date=date(2054, 1, 1),
        term_months=360,
        interest_calculation_type=InterestCalculationType.AMORTIZED,
        payment_frequency=PaymentFrequency.MONTHLY
    )
    values.update(overrides)
    return LoanCalculationInput(**values)


def payment(amount, payment_date, payment_id="P1"):
    return PaymentRecord(payment_id, Decimal(amount), payment_date, "MORTGAGE001")


class TestAmortizedPayment:
    """Test the annuity payment formula"""

    def test_thirty_year_mortgage(self):
        """100,000 at 6% over 30 years"""
        result = calculate_amortized_payment(Decimal('100000'), Decimal('6'), 360)

        assert result.payment_amount == Decimal('599.55')
        assert result.total_payments == 360
        assert result.total_interest == Decimal('115838.19')
        assert result.total_amount == Decimal('215838.19')
        assert result.payment_frequency == PaymentFrequency.MONTHLY

    def test_zero_rate(self):
        result = calculate_amortized_payment(Decimal('12000'), Decimal('0'), 12)

        assert result.payment_amount == Decimal('1000.00')
        assert result.total_interest == Decimal('0.00')

    def test_bi_weekly(self):
        result = calculate_amortized_payment(
            Decimal('100000'), Decimal('6'), 360, PaymentFrequency.BI_WEEKLY
        )
        assert result.total_payments == 780
        # Roughly half the monthly payment
        assert Decimal('270') < result.payment_amount < Decimal('300')

    def test_string_inputs(self):
        result = calculate_amortized_payment("100000", "6", 360)
        assert result.payment_amount == Decimal('599.55')

    def test_invalid_terms(self):
        with pytest.raises(InvalidLoanInput) as exc_info:
            calculate_amortized_payment(Decimal('100000'), Decimal('6'), 601)
        assert exc_info.value.errors[0].code == "EXCESSIVE_TERM"


class TestAmortizationSchedule:
    """Test schedule generation"""

    def setup_method(self):
        self.schedule = generate_amortization_schedule(make_loan())

    def test_row_count(self):
        assert len(self.schedule) == 360
        assert [entry.payment_number for entry in self.schedule[:3]] == [1, 2, 3]

    def test_first_row(self):
        first = self.schedule[0]

        assert first.due_date == date(2024, 2, 1)
        assert first.payment_amount == Decimal('599.55')
        assert first.interest_portion == Decimal('500.00')
        assert first.principal_portion == Decimal('99.55')
        assert first.remaining_balance == Decimal('99900.45')
        assert first.opening_balance == Decimal('100000.00')

    def test_second_row(self):
        second = self.schedule[1]

        # 99900.45 x 0.005 = 499.50225
        assert second.interest_portion == Decimal('499.50')
        assert second.principal_portion == Decimal('100.05')
        assert second.remaining_balance == Decimal('99800.40')

    def test_fixed_payment_until_final_row(self):
        for entry in self.schedule[:-1]:
            assert entry.payment_amount == Decimal('599.55')

    def test_ends_at_zero(self):
        last = self.schedule[-1]

        assert last.remaining_balance == Decimal('0')
        assert last.due_date == date(2054, 1, 1)
        assert last.cumulative_principal == Decimal('100000.00')

    def test_principal_portions_sum_to_principal(self):
        assert sum_decimals(e.principal_portion for e in self.schedule) == Decimal('100000.00')

    def test_rows_are_consistent(self):
        for entry in self.schedule:
            assert entry.payment_amount == entry.principal_portion + entry.interest_portion
            assert entry.remaining_balance >= 0

    def test_cumulative_interest(self):
        total = sum_decimals(e.interest_portion for e in self.schedule)
        assert self.schedule[-1].cumulative_interest == total

    def test_deterministic(self):
        assert generate_amortization_schedule(make_loan()) == self.schedule

    def test_zero_rate_schedule(self):
        loan = make_loan(principal=Decimal('1000'), interest_rate=Decimal('0'),
                         term_months=3, end_date=date(2024, 4, 1))
        schedule = generate_amortization_schedule(loan)

        assert [e.principal_portion for e in schedule] == [
            Decimal('333.33'), Decimal('333.33'), Decimal('333.34')
        ]
        assert all(e.interest_portion == Decimal('0.00') for e in schedule)

    def test_invalid_loan(self):
        with pytest.raises(InvalidLoanInput):
            generate_amortization_schedule(make_loan(principal=Decimal('-1')))


class TestRemainingBalance:
    """Test the closed-form remaining balance"""

    def test_before_any_payment(self):
        assert calculate_remaining_balance(
            Decimal('100000'), Decimal('6'), 360, payments_made=0
        ) == Decimal('100000.00')

    def test_after_first_payment(self):
        assert calculate_remaining_balance(
            Decimal('100000'), Decimal('6'), 360, payments_made=1
        ) == Decimal('99900.45')

    def test_after_last_payment(self):
        assert calculate_remaining_balance(
            Decimal('100000'), Decimal('6'), 360, payments_made=360
        ) == Decimal('0.00')

    def test_zero_rate_is_linear(self):
        assert calculate_remaining_balance(
            Decimal('12000'), Decimal('0'), 12, payments_made=6
        ) == Decimal('6000.00')

    def test_period_out_of_range(self):
        with pytest.raises(CalculationError) as exc_info:
            calculate_remaining_balance(Decimal('100000'), Decimal('6'), 360, payments_made=361)
        assert exc_info.value.code == "INVALID_PERIOD"

        with pytest.raises(CalculationError):
            calculate_remaining_balance(Decimal('100000'), Decimal('6'), 360, payments_made=-1)


class TestPrincipalFromPayment:
    """Test the reverse calculation"""

    def test_reverse_of_mortgage_payment(self):
        principal = calculate_principal_from_payment(Decimal('599.55'), Decimal('6'), 360)
        assert principal == Decimal('99999.91')

    def test_zero_rate(self):
        assert calculate_principal_from_payment(
            Decimal('1000'), Decimal('0'), 12
        ) == Decimal('12000.00')

    def test_invalid_payment(self):
        with pytest.raises(InvalidLoanInput, match="Payment terms validation failed") as exc_info:
            calculate_principal_from_payment(Decimal('0'), Decimal('6'), 360)
        assert exc_info.value.errors[0].code == "INVALID_PAYMENT_AMOUNT"


class TestAmortizedBalance:
    """Test balance tracking from actual payments"""

    def test_no_payments(self):
        result = calculate_amortized_balance(make_loan(), [], date(2024, 1, 15))

        assert result.current_balance == Decimal('100000.00')
        assert result.principal_paid == Decimal('0.00')
        assert result.payments_count == 0
        assert result.next_payment_due == date(2024, 2, 1)
        assert not result.is_paid_off

    def test_scheduled_payment(self):
        result = calculate_amortized_balance(
            make_loan(), [payment('599.55', date(2024, 2, 1))], date(2024, 2, 15)
        )

        assert result.current_balance == Decimal('99900.45')
        assert result.interest_paid == Decimal('500.00')
        assert result.principal_paid == Decimal('99.55')
        assert result.total_paid == Decimal('599.55')
        assert result.outstanding_amount == result.current_balance
        assert result.next_payment_due == date(2024, 3, 1)

    def test_payment_below_interest(self):
        result = calculate_amortized_balance(
            make_loan(), [payment('300', date(2024, 2, 1))], date(2024, 2, 15)
        )

        assert result.interest_paid == Decimal('300.00')
        assert result.principal_paid == Decimal('0.00')
        assert result.current_balance == Decimal('100000.00')

    def test_payoff_stops_processing(self):
        payments = [
            payment('200000', date(2024, 2, 1), "P1"),
            payment('599.55', date(2024, 3, 1), "P2"),
        ]
        result = calculate_amortized_balance(make_loan(), payments, date(2024, 6, 1))

        assert result.is_paid_off
        assert result.current_balance == Decimal('0.00')
        assert result.principal_paid == Decimal('100000.00')
        assert result.interest_paid == Decimal('500.00')
        assert result.payments_count == 1
        assert result.total_paid == Decimal('200000.00')
        assert result.next_payment_due is None

    def test_paying_every_scheduled_row_clears_the_loan(self):
        """Paying each schedule row on its due date leaves exactly zero"""
        cases = [
            (make_loan(), None),
            (make_loan(payment_frequency=PaymentFrequency.BI_WEEKLY), None),
            (make_loan(principal=Decimal('250000'), interest_rate=Decimal('6.5')), None),
            (make_loan(principal=Decimal('12345.67'), interest_rate=Decimal('7.25'),
                       term_months=60, end_date=date(2029, 1, 1),
                       payment_frequency=PaymentFrequency.BI_WEEKLY), None),
            (make_loan(principal=Decimal('5000'), interest_rate=Decimal('0'),
                       term_months=7, end_date=date(2024, 8, 1)), None),
            (make_loan(), CalculationConfig(rounding_mode=RoundingMode.ROUND_UP)),
            (make_loan(), CalculationConfig(rounding_mode=RoundingMode.ROUND_DOWN)),
        ]

        for loan, config in cases:
            schedule = generate_amortization_schedule(loan, config)
            payments = [
                PaymentRecord(f"P{entry.payment_number}", entry.payment_amount,
                              entry.due_date, loan.id)
                for entry in schedule
            ]

            result = calculate_amortized_balance(loan, payments, schedule[-1].due_date, config)

            assert result.is_paid_off
            assert result.current_balance == Decimal('0.00')
            assert result.principal_paid == sum_decimals(e.principal_portion for e in schedule)
            assert result.interest_paid == sum_decimals(e.interest_portion for e in schedule)
            assert result.payments_count == len(schedule)
            assert result.next_payment_due is None
