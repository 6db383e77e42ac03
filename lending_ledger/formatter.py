"""Output helpers for the lending ledger.

This module provides simple functions to render summaries, compound interest
breakdowns and running-balance ledgers in a tabular text format, plus the
conversions used when exporting them to JSON or CSV.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .data_models import (
    BalanceRow,
    Borrower,
    InterestResult,
    PortfolioTotals,
    Summary,
    WeekBreakdown,
)
from .utils import format_currency, format_date

METHOD_LABELS = {
    "simple": "Simple (No Repay)",
    "simple_with_repay": "Simple (With Repay)",
    "compound": "Compound",
}


def print_summary(borrower: Borrower, summary: Summary) -> None:
    """Print a borrower's totals and the three interest results."""
    print(f"Borrower: {borrower.name}")
    print("-" * 72)
    print(f"Interest rate      : {borrower.interest_rate}% per week")
    print(f"Daily rate (equiv) : {summary.daily_interest_rate:.4f}%")
    print(f"Preferred method   : {METHOD_LABELS[borrower.interest_method]}")
    print(f"Total taken        : {format_currency(summary.total_taken)}")
    print(f"Total returned     : {format_currency(summary.total_returned)}")
    print(f"Current balance    : {format_currency(summary.current_balance)}")
    print("-" * 72)
    print(f"{'Method':22s} {'Principal':>15s} {'Interest':>15s} {'Total':>15s}")
    for result in (summary.simple, summary.simple_with_repay, summary.compound):
        marker = " *" if result.method == borrower.interest_method else ""
        print(
            f"{METHOD_LABELS[result.method]:22s} {result.principal:15.2f} "
            f"{result.total_interest:15.2f} {result.total_amount:15.2f}{marker}"
        )
    print("-" * 72)


def print_breakdown(breakdown: Iterable[WeekBreakdown]) -> None:
    """Print the compound interest breakdown as a simple table."""
    headers = ["Week", "Start", "End", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for entry in breakdown:
        row = [
            str(entry.week),
            entry.start_date.isoformat(),
            entry.end_date.isoformat(),
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.balance:.2f}",
        ]
        print("\t".join(row))


def print_ledger(rows: Iterable[BalanceRow]) -> None:
    """Print transactions with their running balance."""
    print(f"{'Date':10s} {'Id':24s} {'Type':9s} {'Amount':>12s} {'Balance':>12s}")
    for row in rows:
        t = row.transaction
        print(
            f"{format_date(t.date):10s} {t.id:24s} {t.type:9s} "
            f"{t.amount:12.2f} {row.running_balance:12.2f}"
        )


def result_to_dict(result: InterestResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "method": result.method,
        "principal": float(result.principal),
        "total_interest": float(result.total_interest),
        "total_amount": float(result.total_amount),
    }
    if result.breakdown is not None:
        data["breakdown"] = breakdown_to_list(result.breakdown)
    return data


def breakdown_to_list(breakdown: Iterable[WeekBreakdown]) -> List[Dict[str, Any]]:
    return [
        {
            "week": e.week,
            "start_date": e.start_date.isoformat(),
            "end_date": e.end_date.isoformat(),
            "principal": float(e.principal),
            "interest": float(e.interest),
            "balance": float(e.balance),
        }
        for e in breakdown
    ]


def summary_to_dict(summary: Summary) -> Dict[str, Any]:
    """Convert a summary into JSON-serialisable primitives."""
    return {
        "total_taken": float(summary.total_taken),
        "total_returned": float(summary.total_returned),
        "current_balance": float(summary.current_balance),
        "daily_interest_rate": float(summary.daily_interest_rate),
        "interest": {
            "simple": result_to_dict(summary.simple),
            "simple_with_repay": result_to_dict(summary.simple_with_repay),
            "compound": result_to_dict(summary.compound),
        },
    }


def borrower_to_dict(borrower: Borrower) -> Dict[str, Any]:
    return {
        "id": borrower.id,
        "name": borrower.name,
        "interest_rate": float(borrower.interest_rate),
        "interest_method": borrower.interest_method,
        "created_at": borrower.created_at.isoformat() if borrower.created_at else None,
        "updated_at": borrower.updated_at.isoformat() if borrower.updated_at else None,
        "transactions": [
            {
                "id": t.id,
                "date": t.date.isoformat(),
                "type": t.type,
                "amount": float(t.amount),
            }
            for t in borrower.transactions
        ],
    }


def portfolio_to_dict(totals: PortfolioTotals) -> Dict[str, Any]:
    return {
        "total_outstanding": float(totals.total_outstanding),
        "active_loans": totals.active_loans,
        "borrowers": totals.borrowers,
    }


def ledger_to_list(rows: Iterable[BalanceRow]) -> List[Dict[str, Any]]:
    return [
        {
            "id": row.transaction.id,
            "date": row.transaction.date.isoformat(),
            "type": row.transaction.type,
            "amount": float(row.transaction.amount),
            "running_balance": float(row.running_balance),
        }
        for row in rows
    ]


def rounded(value: Decimal) -> float:
    """Round a currency value to two places for CSV output."""
    return float(value.quantize(Decimal("0.01")))
