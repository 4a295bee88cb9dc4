"""Tests for the transaction query service."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_ledger.errors import NotFoundError, UnauthorizedError, UserNotFoundError
from finance_ledger.models import (
    Identity,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
)
from finance_ledger.queries import TransactionQueryService
from finance_ledger.services.storage import InMemoryLedgerStorage


def seeded(user, account, day, amount="10.00", **overrides) -> Transaction:
    draft = TransactionDraft(
        account_id=account.id,
        type=overrides.pop("type", TransactionType.EXPENSE),
        amount=Decimal(amount),
        date=day,
        category=overrides.pop("category", "food"),
        **overrides,
    )
    return Transaction.from_draft(draft, user_id=user.id)


@pytest.fixture
def history(user, other_user, account, savings, foreign_account):
    mine = [
        seeded(user, account, date(2024, 1, 5)),
        seeded(user, account, date(2024, 3, 1), category="rent"),
        seeded(user, savings, date(2024, 2, 10), type=TransactionType.INCOME),
    ]
    theirs = [seeded(other_user, foreign_account, date(2024, 3, 2))]
    return mine, theirs


@pytest.fixture
def queries(user, other_user, account, savings, foreign_account, history):
    mine, theirs = history
    storage = InMemoryLedgerStorage(
        users=[user, other_user],
        accounts=[account, savings, foreign_account],
        transactions=mine + theirs,
    )
    return TransactionQueryService(storage)


class TestGetById:
    """Tests for single-transaction lookups."""

    @pytest.mark.asyncio
    async def test_returns_own_transaction(self, queries, identity, history):
        """Test a user can read their own transaction."""
        mine, _ = history
        found = await queries.get_by_id(identity, mine[0].id)
        assert found == mine[0]

    @pytest.mark.asyncio
    async def test_other_users_transaction_is_not_found(self, queries, identity, history):
        """Test another user's transaction looks absent."""
        _, theirs = history
        with pytest.raises(NotFoundError):
            await queries.get_by_id(identity, theirs[0].id)

    @pytest.mark.asyncio
    async def test_missing_transaction(self, queries, identity):
        """Test an unknown id is NotFound."""
        with pytest.raises(NotFoundError):
            await queries.get_by_id(identity, uuid4())

    @pytest.mark.asyncio
    async def test_requires_identity(self, queries, history):
        """Test anonymous and unknown callers are rejected."""
        mine, _ = history
        with pytest.raises(UnauthorizedError):
            await queries.get_by_id(Identity.anonymous(), mine[0].id)
        with pytest.raises(UserNotFoundError):
            await queries.get_by_id(Identity.authenticated("user_ghost"), mine[0].id)


class TestListForUser:
    """Tests for transaction listings."""

    @pytest.mark.asyncio
    async def test_newest_first_and_scoped(self, queries, identity):
        """Test only the caller's rows are listed, newest date first."""
        listed = await queries.list_for_user(identity)
        assert [t.date for t in listed] == [
            date(2024, 3, 1),
            date(2024, 2, 10),
            date(2024, 1, 5),
        ]

    @pytest.mark.asyncio
    async def test_filter_by_account(self, queries, identity, savings):
        """Test narrowing to one account."""
        listed = await queries.list_for_user(identity, TransactionFilter(account_id=savings.id))
        assert len(listed) == 1
        assert listed[0].type is TransactionType.INCOME

    @pytest.mark.asyncio
    async def test_filter_by_range_and_category(self, queries, identity):
        """Test date and category narrowing combine."""
        listed = await queries.list_for_user(
            identity,
            TransactionFilter(date_from=date(2024, 2, 1), category="rent"),
        )
        assert [t.category for t in listed] == ["rent"]

    @pytest.mark.asyncio
    async def test_empty_listing(self, identity, user):
        """Test a user with no transactions gets an empty list."""
        service = TransactionQueryService(InMemoryLedgerStorage(users=[user]))
        assert await service.list_for_user(identity) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
