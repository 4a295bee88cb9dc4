"""
Ledger Mutation Engine

DESIGN DECISION: This is the only code that changes account balances.
Every operation follows the same sequence:

1. Reject unauthenticated callers (no I/O)
2. Pass the admission gate (before any ledger read)
3. Validate the draft
4. Resolve the internal user
5. Inside ONE atomic unit: load and lock the owned rows, write the
   transaction row, then write the balance change

Because step 5 is a single unit of work, a transaction row never
exists without its balance effect, and vice versa.

BALANCE INVARIANT:
    account.balance == sum(effect(t) for t in account's transactions)
    effect(t) = -amount for EXPENSE, +amount for INCOME

Updates apply a delta (balance += new_effect - old_effect) as a
store-side increment, so two concurrent updates on one account compose
instead of overwriting each other.
"""

from collections.abc import Mapping
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError

from finance_ledger.admission import AdmissionGate
from finance_ledger.auth import require_authenticated, resolve_user
from finance_ledger.config import get_settings
from finance_ledger.errors import NotFoundError, ValidationFailedError
from finance_ledger.logger import get_logger
from finance_ledger.models.ledger import (
    Account,
    Identity,
    Transaction,
    TransactionDraft,
)
from finance_ledger.services.storage import LedgerStorageInterface, LedgerUnitOfWork


logger = get_logger(__name__)


DraftInput = Union[TransactionDraft, Mapping]


def coerce_draft(draft: DraftInput) -> TransactionDraft:
    """
    Validate caller input into a TransactionDraft.

    Raises:
        ValidationFailedError: Naming the first field that failed
    """
    if isinstance(draft, TransactionDraft):
        return draft
    try:
        return TransactionDraft.model_validate(draft)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationFailedError(
            f"Invalid transaction: {field or 'draft'}: {first['msg']}",
            field=field,
        ) from e


class LedgerMutationEngine:
    """
    Creates, updates and deletes transactions with their balance effects.

    GUARANTEES:
    - Admission is checked exactly once per operation, before any read
    - Accounts and transactions of other users are never read or written
    - All writes of an operation commit together or not at all
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        gate: AdmissionGate,
        cost_per_mutation: Optional[int] = None,
    ):
        self._storage = storage
        self._gate = gate
        if cost_per_mutation is None:
            cost_per_mutation = get_settings().admission.cost_per_mutation
        self._cost = cost_per_mutation

    async def _admit(self, identity: Identity) -> None:
        external_id = require_authenticated(identity)
        await self._gate.admit(external_id, cost=self._cost)

    async def _lock_owned_account(
        self,
        uow: LedgerUnitOfWork,
        account_id: UUID,
        user_id: UUID,
    ) -> Account:
        account = await uow.lock_account(account_id, user_id)
        if account is None:
            raise NotFoundError("Account not found")
        return account

    async def create(
        self,
        identity: Identity,
        draft: DraftInput,
    ) -> Transaction:
        """
        Record a new transaction and apply its effect to the account.

        Raises:
            UnauthorizedError, RateLimitedError, BlockedError,
            ValidationFailedError, UserNotFoundError, NotFoundError,
            StoreFailureError
        """
        await self._admit(identity)
        draft = coerce_draft(draft)
        user = await resolve_user(self._storage, identity)

        async with self._storage.atomic() as uow:
            account = await self._lock_owned_account(uow, draft.account_id, user.id)

            new_balance = account.balance + draft.effect
            transaction = Transaction.from_draft(draft, user_id=user.id)

            await uow.insert_transaction(transaction)
            await uow.set_balance(account.id, new_balance)

        logger.info(
            "transaction_created",
            user_id=str(user.id),
            effect=str(draft.effect),
            balance=str(new_balance),
            **transaction.to_log_dict(),
        )
        return transaction

    async def update(
        self,
        identity: Identity,
        transaction_id: UUID,
        draft: DraftInput,
    ) -> Transaction:
        """
        Overwrite a transaction and adjust balances by the change in effect.

        Moving a transaction to another account reverses its old effect
        on the old account and applies the new effect to the new one,
        locking both accounts in ascending id order.

        Raises:
            UnauthorizedError, RateLimitedError, BlockedError,
            ValidationFailedError, UserNotFoundError, NotFoundError,
            StoreFailureError
        """
        await self._admit(identity)
        draft = coerce_draft(draft)
        user = await resolve_user(self._storage, identity)

        async with self._storage.atomic() as uow:
            original = await uow.get_transaction(transaction_id, user.id)
            if original is None:
                raise NotFoundError("Transaction not found")

            # Fixed lock order avoids deadlocks between crossing moves
            for account_id in sorted({original.account_id, draft.account_id}):
                await self._lock_owned_account(uow, account_id, user.id)

            old_effect = original.effect
            new_effect = draft.effect

            updated = original.apply_draft(draft)
            await uow.update_transaction(updated)

            if original.account_id == draft.account_id:
                await uow.increment_balance(draft.account_id, new_effect - old_effect)
            else:
                await uow.increment_balance(original.account_id, -old_effect)
                await uow.increment_balance(draft.account_id, new_effect)

        logger.info(
            "transaction_updated",
            user_id=str(user.id),
            previous_account_id=str(original.account_id),
            delta=str(new_effect - old_effect),
            **updated.to_log_dict(),
        )
        return updated

    async def delete(
        self,
        identity: Identity,
        transaction_id: UUID,
    ) -> Transaction:
        """
        Remove a transaction and reverse its effect on the account.

        Returns:
            The deleted transaction

        Raises:
            UnauthorizedError, RateLimitedError, BlockedError,
            UserNotFoundError, NotFoundError, StoreFailureError
        """
        await self._admit(identity)
        user = await resolve_user(self._storage, identity)

        async with self._storage.atomic() as uow:
            transaction = await uow.get_transaction(transaction_id, user.id)
            if transaction is None:
                raise NotFoundError("Transaction not found")

            await self._lock_owned_account(uow, transaction.account_id, user.id)

            await uow.delete_transaction(transaction.id)
            await uow.increment_balance(transaction.account_id, -transaction.effect)

        logger.info(
            "transaction_deleted",
            user_id=str(user.id),
            **transaction.to_log_dict(),
        )
        return transaction
