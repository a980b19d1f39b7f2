"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the transaction ledger used by ``expense_ledger``.
"""

from .ledger import Base, LedgerTransaction

__all__ = [
    "Base",
    "LedgerTransaction",
]
