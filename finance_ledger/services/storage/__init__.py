"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
an in-memory store for tests and a SQLAlchemy store for real databases.
"""

from finance_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
)
from finance_ledger.services.storage.memory import (
    InMemoryLedgerStorage,
    InMemoryUnitOfWork,
)
from finance_ledger.services.storage.sql import (
    SqlAlchemyLedgerStorage,
    SqlAlchemyUnitOfWork,
)

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "LedgerUnitOfWork",
    # Exceptions
    "DuplicateError",
    # Implementations
    "InMemoryLedgerStorage",
    "InMemoryUnitOfWork",
    "SqlAlchemyLedgerStorage",
    "SqlAlchemyUnitOfWork",
]
