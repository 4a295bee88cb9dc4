"""Services package."""

from finance_ledger.services.storage import (
    DuplicateError,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    LedgerUnitOfWork,
    SqlAlchemyLedgerStorage,
)

__all__ = [
    "DuplicateError",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "LedgerUnitOfWork",
    "SqlAlchemyLedgerStorage",
]
