"""Exceptions raised by the lending ledger."""


class LedgerError(Exception):
    """Base exception for ledger operations"""

    pass


class BorrowerNotFoundError(LedgerError):
    """No borrower exists with the requested id"""

    pass


class TransactionNotFoundError(LedgerError):
    """The borrower has no transaction with the requested id"""

    pass


class InvalidTransactionError(LedgerError, ValueError):
    """Transaction data is malformed (negative amount, unknown type, bad date)"""

    pass


class UnknownInterestMethodError(LedgerError, ValueError):
    """Interest method is not one of simple, simple_with_repay or compound"""

    pass
