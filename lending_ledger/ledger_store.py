"""Persistence layer for borrowers and their transactions.

The store keeps borrowers and their ledgers in a relational database through
SQLAlchemy. It defaults to SQLite for local use, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL). The calculation engine
never touches the store: callers load a borrower, then hand its transactions
to the engine.

Every transaction mutation bumps the owning borrower's ``updated_at``, and
ledgers are always returned sorted by date (same-day entries in the order
they were recorded).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DEFAULT_DATABASE_URL
from .data_models import (
    DEFAULT_OWNER,
    INTEREST_METHODS,
    TRANSACTION_TYPES,
    Borrower,
    Transaction,
)
from .exceptions import (
    BorrowerNotFoundError,
    InvalidTransactionError,
    TransactionNotFoundError,
    UnknownInterestMethodError,
)
from .utils import generate_id

logger = logging.getLogger(__name__)

Base = declarative_base()

# decimal places kept by the Numeric columns below
AMOUNT_PLACES = 2
RATE_PLACES = 4


class BorrowerModel(Base):
    __tablename__ = "borrowers"

    id = Column(String(64), primary_key=True)
    owner = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    interest_rate = Column(Numeric(12, RATE_PLACES), nullable=False)
    interest_method = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(String(64), primary_key=True)
    borrower_id = Column(String(64), ForeignKey("borrowers.id"), index=True, nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String(16), nullable=False)
    amount = Column(Numeric(18, AMOUNT_PLACES), nullable=False)
    position = Column(Integer, nullable=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _fits_scale(value: Decimal, places: int) -> bool:
    """True when ``value`` has no digits beyond ``places`` decimal places."""
    return value == value.quantize(Decimal(1).scaleb(-places))


def validate_transaction(type_: str, amount: Decimal) -> None:
    """Reject unknown transaction types and negative amounts."""
    if type_ not in TRANSACTION_TYPES:
        raise InvalidTransactionError(
            f"Transaction type must be 'taken' or 'returned'; got {type_}"
        )
    if amount is None or Decimal(amount) < 0:
        raise InvalidTransactionError(f"Transaction amount must not be negative; got {amount}")
    if not _fits_scale(Decimal(amount), AMOUNT_PLACES):
        raise InvalidTransactionError(
            f"Transaction amount must have at most {AMOUNT_PLACES} decimal places; got {amount}"
        )


def validate_terms(interest_rate: Decimal, interest_method: str) -> None:
    """Reject negative or over-precise rates and unknown interest methods."""
    if Decimal(interest_rate) < 0:
        raise ValueError(f"Interest rate must not be negative; got {interest_rate}")
    if not _fits_scale(Decimal(interest_rate), RATE_PLACES):
        raise ValueError(
            f"Interest rate must have at most {RATE_PLACES} decimal places; got {interest_rate}"
        )
    if interest_method not in INTEREST_METHODS:
        raise UnknownInterestMethodError(f"Unknown interest method: {interest_method}")


class LedgerStore:
    """Database-backed borrower and transaction store."""

    def __init__(self, url: str) -> None:
        kwargs = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # share the single in-memory database across sessions
            kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
        self._engine = create_engine(url, future=True, **kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    # Borrowers

    def list_borrowers(self, owner: Optional[str] = None) -> List[Borrower]:
        with self._session_factory() as session:
            query = select(BorrowerModel).order_by(BorrowerModel.created_at.asc())
            if owner is not None:
                query = query.where(BorrowerModel.owner == owner)
            rows: Iterable[BorrowerModel] = session.execute(query).scalars().all()
            return [self._to_borrower(session, row) for row in rows]

    def get_borrower(self, borrower_id: str) -> Borrower:
        with self._session_factory() as session:
            row = session.get(BorrowerModel, borrower_id)
            if row is None:
                raise BorrowerNotFoundError(f"No borrower with id {borrower_id}")
            return self._to_borrower(session, row)

    def create_borrower(
        self,
        name: str,
        interest_rate: Decimal,
        interest_method: str,
        *,
        owner: str = DEFAULT_OWNER,
        borrower_id: Optional[str] = None,
    ) -> Borrower:
        now = _utcnow()
        borrower = Borrower(
            id=borrower_id or generate_id(),
            name=name,
            interest_rate=Decimal(interest_rate),
            interest_method=interest_method,
            owner=owner,
            created_at=now,
            updated_at=now,
        )
        self.save_borrower(borrower)
        return borrower

    def save_borrower(self, borrower: Borrower) -> None:
        """Insert or replace a borrower together with its whole ledger."""
        if not isinstance(borrower.name, str) or not borrower.name.strip():
            raise ValueError("Borrower name must be a non-empty string")
        validate_terms(borrower.interest_rate, borrower.interest_method)
        for t in borrower.transactions:
            validate_transaction(t.type, t.amount)

        now = _utcnow()
        with self._session_factory() as session:
            row = session.get(BorrowerModel, borrower.id)
            if row is None:
                row = BorrowerModel(id=borrower.id, created_at=borrower.created_at or now)
                session.add(row)
            row.owner = borrower.owner
            row.name = borrower.name.strip()
            row.interest_rate = borrower.interest_rate
            row.interest_method = borrower.interest_method
            row.updated_at = borrower.updated_at or now

            session.execute(
                TransactionModel.__table__.delete().where(
                    TransactionModel.borrower_id == borrower.id
                )
            )
            ordered = sorted(borrower.transactions, key=lambda t: t.date)
            for position, t in enumerate(ordered):
                session.add(self._to_row(borrower.id, t, position))
            session.commit()
        logger.info("saved borrower %s with %d transactions", borrower.id, len(borrower.transactions))

    def update_borrower(
        self,
        borrower_id: str,
        *,
        name: Optional[str] = None,
        interest_rate: Optional[Decimal] = None,
        interest_method: Optional[str] = None,
    ) -> Borrower:
        borrower = self.get_borrower(borrower_id)
        if name is not None:
            borrower.name = name
        if interest_rate is not None:
            borrower.interest_rate = Decimal(interest_rate)
        if interest_method is not None:
            borrower.interest_method = interest_method
        borrower.updated_at = _utcnow()
        self.save_borrower(borrower)
        return borrower

    def delete_borrower(self, borrower_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(BorrowerModel, borrower_id)
            if row is None:
                raise BorrowerNotFoundError(f"No borrower with id {borrower_id}")
            session.execute(
                TransactionModel.__table__.delete().where(
                    TransactionModel.borrower_id == borrower_id
                )
            )
            session.delete(row)
            session.commit()
        logger.info("deleted borrower %s", borrower_id)

    # Transactions

    def add_transaction(
        self,
        borrower_id: str,
        date: date,
        type: str,
        amount: Decimal,
        *,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        amount = Decimal(amount)
        validate_transaction(type, amount)
        transaction = Transaction(
            id=transaction_id or generate_id(), date=date, type=type, amount=amount
        )
        with self._session_factory() as session:
            borrower_row = self._borrower_row(session, borrower_id)
            last = session.execute(
                select(func.max(TransactionModel.position)).where(
                    TransactionModel.borrower_id == borrower_id
                )
            ).scalar()
            position = 0 if last is None else last + 1
            session.add(self._to_row(borrower_id, transaction, position))
            borrower_row.updated_at = _utcnow()
            session.commit()
        logger.info("borrower %s: %s %s on %s", borrower_id, type, amount, date)
        return transaction

    def update_transaction(
        self,
        borrower_id: str,
        transaction_id: str,
        *,
        date: Optional[date] = None,
        type: Optional[str] = None,
        amount: Optional[Decimal] = None,
    ) -> Transaction:
        with self._session_factory() as session:
            borrower_row = self._borrower_row(session, borrower_id)
            row = self._transaction_row(session, borrower_id, transaction_id)
            new_type = row.type if type is None else type
            new_amount = Decimal(row.amount) if amount is None else Decimal(amount)
            validate_transaction(new_type, new_amount)
            if date is not None:
                row.date = date
            row.type = new_type
            row.amount = new_amount
            borrower_row.updated_at = _utcnow()
            session.commit()
            updated = self._to_transaction(row)
        logger.info("borrower %s: updated transaction %s", borrower_id, transaction_id)
        return updated

    def delete_transaction(self, borrower_id: str, transaction_id: str) -> None:
        with self._session_factory() as session:
            borrower_row = self._borrower_row(session, borrower_id)
            row = self._transaction_row(session, borrower_id, transaction_id)
            session.delete(row)
            borrower_row.updated_at = _utcnow()
            session.commit()
        logger.info("borrower %s: deleted transaction %s", borrower_id, transaction_id)

    # Helpers

    @staticmethod
    def _borrower_row(session, borrower_id: str) -> BorrowerModel:
        row = session.get(BorrowerModel, borrower_id)
        if row is None:
            raise BorrowerNotFoundError(f"No borrower with id {borrower_id}")
        return row

    @staticmethod
    def _transaction_row(session, borrower_id: str, transaction_id: str) -> TransactionModel:
        row = session.get(TransactionModel, transaction_id)
        if row is None or row.borrower_id != borrower_id:
            raise TransactionNotFoundError(
                f"Borrower {borrower_id} has no transaction {transaction_id}"
            )
        return row

    @staticmethod
    def _to_row(borrower_id: str, t: Transaction, position: int) -> TransactionModel:
        return TransactionModel(
            id=t.id,
            borrower_id=borrower_id,
            date=t.date,
            type=t.type,
            amount=t.amount,
            position=position,
        )

    @staticmethod
    def _to_transaction(row: TransactionModel) -> Transaction:
        return Transaction(id=row.id, date=row.date, type=row.type, amount=Decimal(row.amount))

    @classmethod
    def _to_borrower(cls, session, row: BorrowerModel) -> Borrower:
        tx_rows = session.execute(
            select(TransactionModel)
            .where(TransactionModel.borrower_id == row.id)
            .order_by(TransactionModel.date.asc(), TransactionModel.position.asc())
        ).scalars()
        return Borrower(
            id=row.id,
            name=row.name,
            interest_rate=Decimal(row.interest_rate),
            interest_method=row.interest_method,
            transactions=[cls._to_transaction(t) for t in tx_rows],
            owner=row.owner,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def create_store_from_env(url: str | None) -> LedgerStore:
    return LedgerStore(url or DEFAULT_DATABASE_URL)
