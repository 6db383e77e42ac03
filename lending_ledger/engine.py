"""Core calculation engine for the lending ledger.

This module implements the three interest models the lender can charge on a
borrower's ledger of advances and repayments:

* ``simple`` charges the weekly rate on the final balance for every whole week
  since the first advance, ignoring when repayments were made.
* ``simple_with_repay`` charges the weekly rate period by period on the
  balance that actually prevailed between transactions.
* ``compound`` walks Monday-aligned calendar weeks and adds each week's
  interest to the balance, producing a week-by-week breakdown.

Every calculator is a pure function of the borrower's rate, a snapshot of
transactions and an as-of date. Transactions dated after the as-of date are
ignored. Results are returned as ``InterestResult`` objects.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal, getcontext
from typing import Callable, Dict, Iterable, List, Optional

from .balance import sort_by_date
from .data_models import (
    COMPOUND,
    SIMPLE,
    SIMPLE_WITH_REPAY,
    TAKEN,
    Borrower,
    InterestResult,
    Transaction,
    WeekBreakdown,
)
from .exceptions import UnknownInterestMethodError
from .utils import end_of_week, start_of_week, weeks_between

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _weekly_rate(borrower: Borrower) -> Decimal:
    """Return the borrower's weekly rate as a fraction (10 % -> 0.1)."""
    return Decimal(borrower.interest_rate) / HUNDRED


def _net_until(transactions: Iterable[Transaction], as_of: date) -> Decimal:
    return sum((t.signed_amount for t in transactions if t.date <= as_of), ZERO)


def simple_interest(
    borrower: Borrower,
    transactions: Iterable[Transaction],
    as_of: Optional[date] = None,
) -> InterestResult:
    """Interest on the final balance for the whole elapsed period.

    ``weeks`` counts whole weeks from the first transaction up to ``as_of``
    and the interest is ``balance * rate * weeks``. Repayments lower the
    balance the interest is charged on, but not the number of weeks it is
    charged for. ``principal`` is the sum of all advances.
    """
    as_of = as_of or date.today()
    kept = [t for t in sort_by_date(transactions) if t.date <= as_of]

    principal = ZERO
    current_balance = ZERO
    for t in kept:
        current_balance += t.signed_amount
        if t.type == TAKEN:
            principal += t.amount

    total_interest = ZERO
    if kept:
        weeks = weeks_between(as_of, kept[0].date)
        total_interest = current_balance * _weekly_rate(borrower) * weeks

    result = InterestResult(
        method=SIMPLE,
        principal=principal,
        total_interest=total_interest,
        total_amount=current_balance + total_interest,
    )
    logger.debug("simple interest for %s as of %s: %s", borrower.id, as_of, result)
    return result


def simple_with_repayment_interest(
    borrower: Borrower,
    transactions: Iterable[Transaction],
    as_of: Optional[date] = None,
) -> InterestResult:
    """Simple interest charged on the balance outstanding between movements.

    For each transaction the whole weeks elapsed since the previous one are
    charged on the balance held before it, provided that balance was
    positive. A final period runs from the last transaction to ``as_of``.
    ``principal`` is the net amount advanced, never below zero.
    """
    as_of = as_of or date.today()
    kept = [t for t in sort_by_date(transactions) if t.date <= as_of]
    if not kept:
        return InterestResult(
            method=SIMPLE_WITH_REPAY,
            principal=ZERO,
            total_interest=ZERO,
            total_amount=ZERO,
        )

    rate = _weekly_rate(borrower)
    total_interest = ZERO
    current_balance = ZERO
    previous_date = kept[0].date

    for t in kept:
        weeks_since_last = weeks_between(t.date, previous_date)
        if weeks_since_last > 0 and current_balance > 0:
            total_interest += current_balance * rate * weeks_since_last
        current_balance += t.signed_amount
        previous_date = t.date

    weeks_since_last = weeks_between(as_of, previous_date)
    if weeks_since_last > 0 and current_balance > 0:
        total_interest += current_balance * rate * weeks_since_last

    result = InterestResult(
        method=SIMPLE_WITH_REPAY,
        principal=max(ZERO, current_balance),
        total_interest=total_interest,
        total_amount=current_balance + total_interest,
    )
    logger.debug(
        "simple-with-repayment interest for %s as of %s: %s", borrower.id, as_of, result
    )
    return result


def compound_interest(
    borrower: Borrower,
    transactions: Iterable[Transaction],
    as_of: Optional[date] = None,
) -> InterestResult:
    """Weekly compound interest over Monday-to-Sunday calendar weeks.

    The schedule starts with the week of the first transaction and ends with
    the week containing ``as_of``. Within each week, transactions dated up to
    the week's Sunday (and not after ``as_of``) are applied first, then the
    week's interest is added to the balance.

    ``total_interest`` is derived as the final balance minus the clamped
    principal rather than accumulated week by week.
    """
    as_of = as_of or date.today()
    ordered = sort_by_date(transactions)
    if not ordered:
        return InterestResult(
            method=COMPOUND,
            principal=ZERO,
            total_interest=ZERO,
            total_amount=ZERO,
            breakdown=[],
        )

    first_week_start = start_of_week(ordered[0].date)
    as_of_week_start = start_of_week(as_of)
    total_weeks = weeks_between(as_of_week_start, first_week_start) + 1

    rate = _weekly_rate(borrower)
    breakdown: List[WeekBreakdown] = []
    balance = ZERO
    index = 0

    for week in range(total_weeks):
        week_start = first_week_start + timedelta(weeks=week)
        week_end = end_of_week(week_start)

        while (
            index < len(ordered)
            and ordered[index].date <= week_end
            and ordered[index].date <= as_of
        ):
            balance += ordered[index].signed_amount
            index += 1

        # Never false: the loop stops at the week containing as_of.
        if week_start <= as_of:
            opening = balance
            interest = opening * rate
            balance = opening + interest
            breakdown.append(
                WeekBreakdown(
                    week=week + 1,
                    start_date=week_start,
                    end_date=week_end,
                    principal=opening,
                    interest=interest,
                    balance=balance,
                )
            )

    principal = max(ZERO, _net_until(ordered, as_of))
    final_balance = breakdown[-1].balance if breakdown else ZERO

    result = InterestResult(
        method=COMPOUND,
        principal=principal,
        total_interest=final_balance - principal,
        total_amount=final_balance,
        breakdown=breakdown,
    )
    logger.debug(
        "compound interest for %s as of %s: %s over %d weeks",
        borrower.id,
        as_of,
        result.total_amount,
        len(breakdown),
    )
    return result


def daily_rate(weekly_rate: Decimal) -> Decimal:
    """Return the daily percentage rate that compounds to ``weekly_rate``.

    The formula is:

        daily = ((1 + weekly / 100) ^ (1 / 7) - 1) * 100

    The figure is informational only; no calculator uses it.
    """
    weekly = Decimal(weekly_rate)
    if weekly == 0:
        return ZERO
    factor = (1 + weekly / HUNDRED) ** (Decimal(1) / Decimal(7))
    return (factor - 1) * HUNDRED


CALCULATORS: Dict[str, Callable[..., InterestResult]] = {
    SIMPLE: simple_interest,
    SIMPLE_WITH_REPAY: simple_with_repayment_interest,
    COMPOUND: compound_interest,
}


def calculate_interest(
    method: str,
    borrower: Borrower,
    transactions: Iterable[Transaction],
    as_of: Optional[date] = None,
) -> InterestResult:
    """Run the calculator registered for ``method``."""
    try:
        calculator = CALCULATORS[method]
    except KeyError:
        raise UnknownInterestMethodError(f"Unknown interest method: {method}") from None
    return calculator(borrower, transactions, as_of)
