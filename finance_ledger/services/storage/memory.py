"""
In-Memory Storage Implementation

Used by tests and local experiments. Follows the same interface as the
SQLAlchemy store, including all-or-nothing units of work.

TRADEOFFS:
- One store-wide lock instead of row locks (fine for a single process)
- Nothing survives a restart

Records are stored as values: every read returns a copy, and every
write replaces the stored record. A unit of work snapshots the two
tables when it starts and restores the snapshot if the unit raises.
"""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Iterable, Optional
from uuid import UUID

from finance_ledger.errors import StoreFailureError
from finance_ledger.models.ledger import (
    Account,
    Transaction,
    TransactionFilter,
    User,
    to_money,
    utc_now,
)
from finance_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    LedgerUnitOfWork,
)


class InMemoryUnitOfWork(LedgerUnitOfWork):
    """Unit of work over InMemoryLedgerStorage's tables."""

    def __init__(self, storage: "InMemoryLedgerStorage"):
        self._storage = storage

    async def lock_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        # The store-wide lock is already held for the whole unit
        return await self._storage.get_account(account_id, user_id)

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        return await self._storage.get_transaction(transaction_id, user_id)

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._storage._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._storage._transactions[transaction.id] = transaction.model_copy()
        return transaction

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id not in self._storage._transactions:
            raise StoreFailureError(f"Transaction row missing: {transaction.id}")
        self._storage._transactions[transaction.id] = transaction.model_copy()
        return transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        if self._storage._transactions.pop(transaction_id, None) is None:
            raise StoreFailureError(f"Transaction row missing: {transaction_id}")

    async def set_balance(self, account_id: UUID, balance: Decimal) -> None:
        account = self._account_row(account_id)
        self._storage._accounts[account_id] = account.model_copy(
            update={"balance": to_money(balance), "updated_at": utc_now()}
        )

    async def increment_balance(self, account_id: UUID, delta: Decimal) -> None:
        account = self._account_row(account_id)
        self._storage._accounts[account_id] = account.model_copy(
            update={"balance": to_money(account.balance + delta), "updated_at": utc_now()}
        )

    def _account_row(self, account_id: UUID) -> Account:
        try:
            return self._storage._accounts[account_id]
        except KeyError:
            raise StoreFailureError(f"Account row missing: {account_id}")


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Dictionary-backed ledger storage.

    Optional seed collections let tests start from a known state
    without awaiting anything.
    """

    def __init__(
        self,
        users: Iterable[User] = (),
        accounts: Iterable[Account] = (),
        transactions: Iterable[Transaction] = (),
    ):
        self._users: dict[UUID, User] = {u.id: u for u in users}
        self._accounts: dict[UUID, Account] = {a.id: a for a in accounts}
        self._transactions: dict[UUID, Transaction] = {t.id: t for t in transactions}
        self._lock = asyncio.Lock()

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        for user in self._users.values():
            if user.external_id == external_id:
                return user
        return None

    async def create_user(self, user: User) -> User:
        async with self._lock:
            if await self.get_user_by_external_id(user.external_id):
                raise DuplicateError(f"User already registered: {user.external_id}")
            self._users[user.id] = user
        return user

    async def create_account(self, account: Account) -> Account:
        if account.user_id not in self._users:
            raise StoreFailureError(f"Unknown account owner: {account.user_id}")
        async with self._lock:
            self._accounts[account.id] = account.model_copy()
        return account

    async def get_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        account = self._accounts.get(account_id)
        if account is None or account.user_id != user_id:
            return None
        return account.model_copy()

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            return None
        return transaction.model_copy()

    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        filters = filters or TransactionFilter()
        transactions = [
            t.model_copy()
            for t in self._transactions.values()
            if t.user_id == user_id and filters.matches(t)
        ]
        # Newest first
        transactions.sort(key=lambda t: (t.date, t.created_at), reverse=True)
        return transactions

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[InMemoryUnitOfWork]:
        async with self._lock:
            accounts = dict(self._accounts)
            transactions = dict(self._transactions)
            try:
                yield InMemoryUnitOfWork(self)
            except BaseException:
                self._accounts = accounts
                self._transactions = transactions
                raise
