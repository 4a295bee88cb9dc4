"""
Ledger Storage Contract

DESIGN DECISION: The mutation engine and query service only ever see
these two ABCs. Production runs on the SQLAlchemy store, tests on the
in-memory one, and neither leaks its session or dict into the engine.

Reads outside a unit of work are owner-filtered point lookups and
listings. Every write happens inside a unit of work obtained from
atomic(), which commits all of its writes together or none of them.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_ledger.errors import StoreFailureError
from finance_ledger.models.ledger import (
    Account,
    Transaction,
    TransactionFilter,
    User,
)


class LedgerUnitOfWork(ABC):
    """
    Writes and locked reads inside one atomic unit.

    Implementations hold the row lock on every account returned by
    lock_account until the unit ends.
    """

    @abstractmethod
    async def lock_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        """
        Read an owned account and lock it for the rest of the unit.

        Returns:
            The account, or None if absent or owned by someone else
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        """Read an owned transaction inside the unit."""
        pass

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction row."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Overwrite an existing transaction row.

        Raises:
            StoreFailureError: If the row does not exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> None:
        """Delete a transaction row."""
        pass

    @abstractmethod
    async def set_balance(self, account_id: UUID, balance: Decimal) -> None:
        """Set an account balance to an absolute value."""
        pass

    @abstractmethod
    async def increment_balance(self, account_id: UUID, delta: Decimal) -> None:
        """
        Add delta to an account balance.

        The addition happens in the store, so concurrent increments
        on the same account compose.
        """
        pass


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (SQLAlchemy, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        """
        Map an external identity token to a user.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """
        Register a user.

        Raises:
            DuplicateError: If the external id is already registered
        """
        pass

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        """Create an account with its opening balance."""
        pass

    @abstractmethod
    async def get_account(
        self,
        account_id: UUID,
        user_id: UUID,
    ) -> Optional[Account]:
        """
        Retrieve an account owned by user_id.

        Returns:
            The account if found and owned, None otherwise
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction owned by user_id.

        Returns:
            The transaction if found and owned, None otherwise
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions.

        Args:
            user_id: Owner whose transactions are listed
            filters: Optional narrowing predicate

        Returns:
            Matching transactions, newest date first, no limit
        """
        pass

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[LedgerUnitOfWork]:
        """
        Open an atomic unit of work.

        Usage:
            async with storage.atomic() as uow:
                ...

        Raises:
            StoreFailureError: If the unit could not commit
        """
        pass


class DuplicateError(StoreFailureError):
    """Attempted to insert a duplicate entity."""
    pass
