"""Pytest fixtures for testing"""

from datetime import date
from decimal import Decimal
from itertools import count

import pytest

from lending_ledger.data_models import Borrower, Transaction
from lending_ledger.ledger_store import LedgerStore

_ids = count(1)


def tx(day: str, type_: str, amount) -> Transaction:
    """Build a transaction from an ISO date string."""
    return Transaction(
        id=f"t{next(_ids)}",
        date=date.fromisoformat(day),
        type=type_,
        amount=Decimal(str(amount)),
    )


@pytest.fixture
def borrower() -> Borrower:
    """Borrower charged 10 % per week"""
    return Borrower(id="b1", name="Asha", interest_rate=Decimal("10"))


@pytest.fixture
def store() -> LedgerStore:
    """Ledger store backed by an in-memory SQLite database"""
    return LedgerStore("sqlite://")
