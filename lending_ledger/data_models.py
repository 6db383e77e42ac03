"""Data models for the lending ledger.

This module defines dataclasses representing the entities used by the ledger:
individual cash movements (transactions), borrowers with their weekly interest
terms, and the results produced by the calculation engine (interest results,
weekly breakdown rows and the per-borrower summary). Using dataclasses makes it
easy to construct, inspect and serialize these structures.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

TAKEN = "taken"
RETURNED = "returned"
TRANSACTION_TYPES = (TAKEN, RETURNED)

SIMPLE = "simple"
SIMPLE_WITH_REPAY = "simple_with_repay"
COMPOUND = "compound"
INTEREST_METHODS = (SIMPLE, SIMPLE_WITH_REPAY, COMPOUND)

DEFAULT_OWNER = "default_user"


@dataclass(frozen=True)
class Transaction:
    """A single cash movement between the lender and a borrower.

    Attributes
    ----------
    id: str
        Unique identifier of the transaction.
    date: date
        Calendar date of the movement (no time component).
    type: str
        ``"taken"`` when the borrower received money, ``"returned"`` when the
        borrower paid money back.
    amount: Decimal
        Non-negative amount of the movement.
    """

    id: str
    date: date
    type: str  # "taken" or "returned"
    amount: Decimal

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance owed by the borrower."""
        return self.amount if self.type == TAKEN else -self.amount


@dataclass
class Borrower:
    """A borrower and the terms the lender charges them.

    ``interest_rate`` is a percentage applied per week (10 means 10 % per
    week). ``interest_method`` names the calculation the lender prefers for
    this borrower; the summary always reports all three methods.
    """

    id: str
    name: str
    interest_rate: Decimal
    interest_method: str = COMPOUND
    transactions: List[Transaction] = field(default_factory=list)
    owner: str = DEFAULT_OWNER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class WeekBreakdown:
    """One calendar week (Monday to Sunday) of a compound interest schedule.

    ``principal`` is the balance after the week's transactions were applied
    but before the week's interest was added; ``balance`` includes it.
    """

    week: int
    start_date: date
    end_date: date
    principal: Decimal
    interest: Decimal
    balance: Decimal


@dataclass
class InterestResult:
    method: str
    principal: Decimal
    total_interest: Decimal
    total_amount: Decimal
    breakdown: Optional[List[WeekBreakdown]] = None


@dataclass
class Summary:
    """Aggregate figures for a borrower over an optional date range."""

    total_taken: Decimal
    total_returned: Decimal
    current_balance: Decimal  # positive means the borrower owes the lender
    daily_interest_rate: Decimal
    simple: InterestResult
    simple_with_repay: InterestResult
    compound: InterestResult

    def for_method(self, method: str) -> InterestResult:
        return {
            SIMPLE: self.simple,
            SIMPLE_WITH_REPAY: self.simple_with_repay,
            COMPOUND: self.compound,
        }[method]


@dataclass
class PortfolioTotals:
    """Lender-wide figures across every borrower."""

    total_outstanding: Decimal  # net of all balances, overpayments included
    active_loans: int  # borrowers whose balance is above zero
    borrowers: int


@dataclass
class BalanceRow:
    """A transaction annotated with the running balance after it."""

    transaction: Transaction
    running_balance: Decimal
