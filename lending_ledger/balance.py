"""Running balance calculations over a borrower's ledger.

A positive balance means the borrower owes the lender; a negative balance
means the borrower has paid back more than they took.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .data_models import BalanceRow, Borrower, PortfolioTotals, Transaction


def running_balance(transactions: Iterable[Transaction]) -> Decimal:
    """Return the net balance of ``transactions`` in the order given.

    Takens add to the balance and repayments subtract from it. The net sum
    does not depend on the order of the list.
    """
    balance = Decimal("0")
    for t in transactions:
        balance += t.signed_amount
    return balance


def sort_by_date(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Return a new list sorted by date; same-day entries keep their order."""
    return sorted(transactions, key=lambda t: t.date)


def annotate_running_balance(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[BalanceRow]:
    """Pair each transaction in ``[start, end]`` with its running balance.

    Transactions are walked in date order. When ``start`` is given, the
    balance is seeded with the net of every transaction dated before it so
    that a windowed view still shows the true balance carried in.
    """
    ordered = sort_by_date(transactions)

    balance = Decimal("0")
    if start is not None:
        balance = running_balance(t for t in ordered if t.date < start)

    rows: List[BalanceRow] = []
    for t in ordered:
        if start is not None and t.date < start:
            continue
        if end is not None and t.date > end:
            continue
        balance += t.signed_amount
        rows.append(BalanceRow(transaction=t, running_balance=balance))
    return rows


def portfolio_totals(borrowers: Iterable[Borrower]) -> PortfolioTotals:
    """Return the lender's total outstanding and count of active loans.

    Each borrower contributes their net balance, negative or not; a loan is
    active while its balance is above zero.
    """
    total = Decimal("0")
    active = 0
    count = 0
    for borrower in borrowers:
        balance = running_balance(borrower.transactions)
        total += balance
        if balance > 0:
            active += 1
        count += 1
    return PortfolioTotals(total_outstanding=total, active_loans=active, borrowers=count)
