"""Unit tests for the summary assembler and date-range filtering"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from conftest import tx
from lending_ledger.data_models import COMPOUND, RETURNED, SIMPLE, TAKEN
from lending_ledger.engine import (
    compound_interest,
    daily_rate,
    simple_interest,
    simple_with_repayment_interest,
)
from lending_ledger.summary import build_summary, filter_by_date_range


@pytest.fixture
def ledger():
    return [
        tx("2024-02-05", TAKEN, 200),
        tx("2024-01-01", TAKEN, 1000),
        tx("2024-01-15", RETURNED, 400),
    ]


def test_filter_without_bounds_keeps_everything_in_order(ledger):
    assert filter_by_date_range(ledger) == ledger


def test_filter_bounds_are_inclusive(ledger):
    kept = filter_by_date_range(ledger, date(2024, 1, 15), date(2024, 2, 5))
    assert [t.date for t in kept] == [date(2024, 2, 5), date(2024, 1, 15)]


def test_filter_end_only(ledger):
    kept = filter_by_date_range(ledger, end=date(2024, 1, 14))
    assert [t.amount for t in kept] == [Decimal("1000")]


def test_summary_totals(borrower, ledger):
    summary = build_summary(borrower, ledger, as_of=date(2024, 2, 5))

    assert summary.total_taken == 1200
    assert summary.total_returned == 400
    assert summary.current_balance == 800
    assert summary.daily_interest_rate == daily_rate(Decimal("10"))


def test_summary_runs_all_three_methods(borrower, ledger):
    as_of = date(2024, 2, 5)
    summary = build_summary(borrower, ledger, as_of=as_of)

    assert summary.simple == simple_interest(borrower, ledger, as_of)
    assert summary.simple_with_repay == simple_with_repayment_interest(borrower, ledger, as_of)
    assert summary.compound == compound_interest(borrower, ledger, as_of)
    assert summary.for_method(SIMPLE) is summary.simple
    assert summary.for_method(COMPOUND) is summary.compound


def test_summary_with_date_range(borrower, ledger):
    as_of = date(2024, 2, 5)
    summary = build_summary(borrower, ledger, start=date(2024, 1, 10), as_of=as_of)
    window = filter_by_date_range(ledger, start=date(2024, 1, 10))

    assert summary.total_taken == 200
    assert summary.total_returned == 400
    assert summary.current_balance == -200
    assert summary.compound == compound_interest(borrower, window, as_of)


def test_summary_defaults_to_borrower_ledger(borrower, ledger):
    owned = replace(borrower, transactions=ledger)
    as_of = date(2024, 2, 5)
    assert build_summary(owned, as_of=as_of) == build_summary(borrower, ledger, as_of=as_of)


def test_summary_of_empty_ledger(borrower):
    summary = build_summary(borrower, [], as_of=date(2024, 1, 1))

    assert summary.total_taken == summary.total_returned == summary.current_balance == 0
    assert summary.compound.breakdown == []
    assert summary.simple.total_amount == 0
