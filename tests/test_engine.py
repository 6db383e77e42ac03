"""Unit tests for the three interest calculators"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import tx
from lending_ledger.data_models import (
    COMPOUND,
    RETURNED,
    SIMPLE,
    SIMPLE_WITH_REPAY,
    TAKEN,
    Borrower,
)
from lending_ledger.engine import (
    calculate_interest,
    compound_interest,
    daily_rate,
    simple_interest,
    simple_with_repayment_interest,
)
from lending_ledger.exceptions import UnknownInterestMethodError

CALCULATORS = [simple_interest, simple_with_repayment_interest, compound_interest]


def test_two_weeks_single_advance(borrower):
    """1000 taken on Monday 2024-01-01, evaluated two Mondays later"""
    ledger = [tx("2024-01-01", TAKEN, 1000)]
    as_of = date(2024, 1, 15)

    simple = simple_interest(borrower, ledger, as_of)
    assert simple.method == SIMPLE
    assert simple.principal == 1000
    assert simple.total_interest == 200
    assert simple.total_amount == 1200
    assert simple.breakdown is None

    repay = simple_with_repayment_interest(borrower, ledger, as_of)
    assert repay.method == SIMPLE_WITH_REPAY
    assert repay.principal == 1000
    assert repay.total_interest == 200
    assert repay.total_amount == 1200

    compound = compound_interest(borrower, ledger, as_of)
    assert compound.method == COMPOUND
    assert [w.balance for w in compound.breakdown] == [
        Decimal("1100"),
        Decimal("1210"),
        Decimal("1331"),
    ]
    assert compound.principal == 1000
    assert compound.total_interest == 331
    assert compound.total_amount == 1331

    last = compound.breakdown[-1]
    assert last.week == 3
    assert last.start_date == date(2024, 1, 15)
    assert last.end_date == date(2024, 1, 21)
    assert last.principal == 1210
    assert last.interest == 121


@pytest.mark.parametrize("calculator", CALCULATORS)
def test_empty_ledger_is_all_zero(borrower, calculator):
    result = calculator(borrower, [], date(2024, 1, 15))
    assert result.principal == 0
    assert result.total_interest == 0
    assert result.total_amount == 0


def test_empty_ledger_compound_has_empty_breakdown(borrower):
    assert compound_interest(borrower, [], date(2024, 1, 15)).breakdown == []


def test_same_day_as_of_charges_no_elapsed_interest():
    zero_rate = Borrower(id="b0", name="Zero", interest_rate=Decimal("0"))
    ledger = [tx("2024-01-03", TAKEN, 1000)]
    as_of = date(2024, 1, 3)

    for calculator in CALCULATORS:
        result = calculator(zero_rate, ledger, as_of)
        assert result.total_interest == 0
        assert result.total_amount == result.principal == 1000


def test_same_day_as_of_simple_methods_charge_nothing(borrower):
    ledger = [tx("2024-01-03", TAKEN, 1000)]
    as_of = date(2024, 1, 3)

    for calculator in (simple_interest, simple_with_repayment_interest):
        result = calculator(borrower, ledger, as_of)
        assert result.total_interest == 0
        assert result.total_amount == 1000


def test_same_day_as_of_compound_charges_opening_week(borrower):
    result = compound_interest(borrower, [tx("2024-01-03", TAKEN, 1000)], date(2024, 1, 3))

    assert len(result.breakdown) == 1
    assert result.breakdown[0].start_date == date(2024, 1, 1)
    assert result.total_interest == 100
    assert result.total_amount == 1100


def test_simple_truncates_partial_weeks(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000)]
    assert simple_interest(borrower, ledger, date(2024, 1, 7)).total_interest == 0
    assert simple_interest(borrower, ledger, date(2024, 1, 13)).total_interest == 100


def test_simple_charges_final_balance_for_whole_period(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000), tx("2024-01-15", RETURNED, 500)]
    result = simple_interest(borrower, ledger, date(2024, 1, 29))

    assert result.principal == 1000  # advances only, repayments ignored
    assert result.total_interest == 200  # 500 * 10 % * 4 weeks
    assert result.total_amount == 700


def test_simple_with_repay_charges_prevailing_balance(borrower):
    ledger = [tx("2024-01-15", RETURNED, 500), tx("2024-01-01", TAKEN, 1000)]
    result = simple_with_repayment_interest(borrower, ledger, date(2024, 1, 29))

    # 1000 for two weeks, then 500 for two weeks
    assert result.total_interest == 300
    assert result.principal == 500
    assert result.total_amount == 800


def test_simple_with_repay_cleared_within_week_accrues_nothing(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000), tx("2024-01-04", RETURNED, 1000)]
    result = simple_with_repayment_interest(borrower, ledger, date(2024, 1, 11))

    assert result.total_interest == 0
    assert result.principal == 0
    assert result.total_amount == 0


def test_simple_with_repay_skips_periods_without_positive_balance(borrower):
    ledger = [
        tx("2024-01-01", TAKEN, 1000),
        tx("2024-01-02", RETURNED, 1000),
        tx("2024-01-16", TAKEN, 1000),
    ]
    result = simple_with_repayment_interest(borrower, ledger, date(2024, 1, 23))

    # the two weeks at zero balance are free; one week on the new advance
    assert result.total_interest == 100
    assert result.total_amount == 1100


def test_overpayment_clamps_principal(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000), tx("2024-01-02", RETURNED, 1500)]
    as_of = date(2024, 1, 15)

    repay = simple_with_repayment_interest(borrower, ledger, as_of)
    assert repay.principal == 0
    assert repay.total_interest == 0
    assert repay.total_amount == -500

    simple = simple_interest(borrower, ledger, as_of)
    assert simple.principal == 1000
    assert simple.total_interest == -100
    assert simple.total_amount == -600

    compound = compound_interest(borrower, ledger, as_of)
    assert compound.principal == 0
    assert compound.total_amount == Decimal("-665.5")
    assert compound.total_interest == compound.total_amount


@pytest.mark.parametrize("calculator", CALCULATORS)
def test_transactions_after_as_of_are_ignored(borrower, calculator):
    base = [tx("2024-01-01", TAKEN, 1000)]
    with_future = base + [tx("2024-02-01", TAKEN, 5000), tx("2024-01-20", RETURNED, 1000)]
    as_of = date(2024, 1, 15)

    assert calculator(borrower, with_future, as_of) == calculator(borrower, base, as_of)


@pytest.mark.parametrize("calculator", CALCULATORS)
def test_as_of_before_first_transaction(borrower, calculator):
    result = calculator(borrower, [tx("2024-02-01", TAKEN, 1000)], date(2024, 1, 1))
    assert result.principal == 0
    assert result.total_interest == 0
    assert result.total_amount == 0


def test_compound_mid_week_as_of_cuts_off_later_transactions(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000), tx("2024-01-10", TAKEN, 500)]
    result = compound_interest(borrower, ledger, date(2024, 1, 9))

    assert [w.principal for w in result.breakdown] == [Decimal("1000"), Decimal("1100")]
    assert result.total_amount == 1210
    assert result.principal == 1000


def test_compound_breakdown_covers_every_calendar_week(borrower):
    # Sunday start, Monday as-of: 2 calendar weeks, 1 elapsed day
    ledger = [tx("2024-01-07", TAKEN, 1000)]
    result = compound_interest(borrower, ledger, date(2024, 1, 8))

    assert len(result.breakdown) == 2
    assert [w.week for w in result.breakdown] == [1, 2]
    assert result.breakdown[0].start_date == date(2024, 1, 1)
    assert result.breakdown[1].end_date == date(2024, 1, 14)


def test_compound_breakdown_chains(borrower):
    ledger = [
        tx("2024-01-01", TAKEN, 1000),
        tx("2024-01-17", RETURNED, 500),
        tx("2024-02-02", TAKEN, 250),
    ]
    result = compound_interest(borrower, ledger, date(2024, 2, 12))
    weeks = result.breakdown

    assert len(weeks) == 7
    for previous, current in zip(weeks, weeks[1:]):
        net = sum(
            (t.signed_amount for t in ledger if current.start_date <= t.date <= current.end_date),
            Decimal("0"),
        )
        assert current.principal == previous.balance + net
        assert current.balance == current.principal + current.interest
        assert current.start_date == previous.start_date + timedelta(weeks=1)


def test_compound_breakdown_chains_over_long_schedule():
    """Rows keep chaining once balances carry more digits than the context keeps"""
    borrower = Borrower(id="b7", name="Long", interest_rate=Decimal("7.3"))
    ledger = [tx("2024-01-01", TAKEN, "1234.57")]
    result = compound_interest(borrower, ledger, date(2025, 6, 2))
    weeks = result.breakdown

    assert len(weeks) == 75
    assert weeks[0].principal == Decimal("1234.57")
    for previous, current in zip(weeks, weeks[1:]):
        assert current.principal == previous.balance
        assert current.balance == current.principal + current.interest
    assert result.total_amount == weeks[-1].balance


def test_compound_repayment_mid_schedule(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000), tx("2024-01-15", RETURNED, 500)]
    result = compound_interest(borrower, ledger, date(2024, 1, 29))

    assert [w.balance for w in result.breakdown] == [
        Decimal("1100"),
        Decimal("1210"),
        Decimal("781"),
        Decimal("859.1"),
        Decimal("945.01"),
    ]
    assert result.principal == 500
    assert result.total_interest == Decimal("445.01")


@pytest.mark.parametrize("calculator", CALCULATORS)
def test_calculators_are_pure(borrower, calculator):
    ledger = [
        tx("2024-01-15", RETURNED, 300),
        tx("2024-01-01", TAKEN, 1000),
        tx("2024-01-03", TAKEN, 250),
    ]
    snapshot = list(ledger)
    as_of = date(2024, 2, 1)

    first = calculator(borrower, ledger, as_of)
    second = calculator(borrower, ledger, as_of)

    assert first == second
    assert ledger == snapshot


def test_as_of_defaults_to_today(borrower):
    today = date.today()
    ledger = [tx((today - timedelta(days=14)).isoformat(), TAKEN, 1000)]
    assert simple_interest(borrower, ledger).total_interest == 200


def test_daily_rate():
    assert daily_rate(Decimal("0")) == 0
    rate = daily_rate(Decimal("10"))
    assert float(rate) == pytest.approx(1.3709, abs=1e-4)
    assert float((1 + rate / 100) ** 7) == pytest.approx(1.1)


def test_calculate_interest_dispatches_by_method(borrower):
    ledger = [tx("2024-01-01", TAKEN, 1000)]
    as_of = date(2024, 1, 15)
    assert calculate_interest(COMPOUND, borrower, ledger, as_of).total_amount == 1331
    assert calculate_interest(SIMPLE, borrower, ledger, as_of).total_amount == 1200


def test_calculate_interest_rejects_unknown_method(borrower):
    with pytest.raises(UnknownInterestMethodError):
        calculate_interest("daily", borrower, [], date(2024, 1, 1))
