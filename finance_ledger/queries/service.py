"""
Transaction Query Service

Read-only access to a user's transactions. Queries are cost-free, so
they do not pass the admission gate, but they are scoped to the
caller exactly like mutations are.
"""

from typing import Optional
from uuid import UUID

from finance_ledger.auth import resolve_user
from finance_ledger.errors import NotFoundError
from finance_ledger.logger import get_logger
from finance_ledger.models.ledger import (
    Identity,
    Transaction,
    TransactionFilter,
)
from finance_ledger.services.storage import LedgerStorageInterface


logger = get_logger(__name__)


class TransactionQueryService:
    """
    Executes transaction lookups against ledger storage.

    GUARANTEES:
    - Only the caller's own transactions are ever returned
    - Listings are newest first and never silently truncated
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def get_by_id(
        self,
        identity: Identity,
        transaction_id: UUID,
    ) -> Transaction:
        """
        Fetch one of the caller's transactions.

        Raises:
            UnauthorizedError, UserNotFoundError
            NotFoundError: If absent or owned by another user
        """
        user = await resolve_user(self._storage, identity)
        transaction = await self._storage.get_transaction(transaction_id, user.id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    async def list_for_user(
        self,
        identity: Identity,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        """
        List the caller's transactions, newest date first.

        Pagination is the caller's job; no limit is applied here.
        """
        user = await resolve_user(self._storage, identity)
        transactions = await self._storage.list_transactions(user.id, filters)
        logger.debug(
            "transactions_listed",
            user_id=str(user.id),
            result_count=len(transactions),
        )
        return transactions
