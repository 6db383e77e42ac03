"""Summary figures for a borrower.

Combines the running balance, the three interest calculators and the derived
daily rate into one ``Summary``, optionally restricted to a date range.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .balance import running_balance
from .data_models import RETURNED, TAKEN, Borrower, Summary, Transaction
from .engine import (
    compound_interest,
    daily_rate,
    simple_interest,
    simple_with_repayment_interest,
)

logger = logging.getLogger(__name__)


def filter_by_date_range(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Transaction]:
    """Keep transactions dated within ``[start, end]``; both bounds optional.

    Dates are compared as ISO ``YYYY-MM-DD`` text, which orders the same way
    as the calendar because the text is always zero padded. The input order
    is preserved.
    """
    start_key = start.isoformat() if start else None
    end_key = end.isoformat() if end else None
    kept = []
    for t in transactions:
        key = t.date.isoformat()
        if start_key and key < start_key:
            continue
        if end_key and key > end_key:
            continue
        kept.append(t)
    return kept


def build_summary(
    borrower: Borrower,
    transactions: Optional[Iterable[Transaction]] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    as_of: Optional[date] = None,
) -> Summary:
    """Return totals, balance and all three interest results for a borrower.

    ``transactions`` defaults to the borrower's own ledger. The balance is
    taken over the filtered list in its stored order; the interest
    calculators sort on their own.
    """
    as_of = as_of or date.today()
    source = borrower.transactions if transactions is None else transactions
    filtered = filter_by_date_range(source, start, end)

    total_taken = sum((t.amount for t in filtered if t.type == TAKEN), Decimal("0"))
    total_returned = sum((t.amount for t in filtered if t.type == RETURNED), Decimal("0"))

    summary = Summary(
        total_taken=total_taken,
        total_returned=total_returned,
        current_balance=running_balance(filtered),
        daily_interest_rate=daily_rate(borrower.interest_rate),
        simple=simple_interest(borrower, filtered, as_of),
        simple_with_repay=simple_with_repayment_interest(borrower, filtered, as_of),
        compound=compound_interest(borrower, filtered, as_of),
    )
    logger.debug(
        "summary for %s (%s..%s, as of %s): balance %s over %d transactions",
        borrower.id,
        start,
        end,
        as_of,
        summary.current_balance,
        len(filtered),
    )
    return summary
