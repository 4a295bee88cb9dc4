"""
Tests for Finance Ledger

Test strategy:
1. Unit tests for individual components (models, normalizer, schedule)
2. Engine and query tests against in-memory and SQLite storage
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finance_ledger.errors import ValidationFailedError
from finance_ledger.models import (
    RECEIPT_CATEGORIES,
    MAX_AMOUNT,
    Account,
    ExpenseCategory,
    Identity,
    ReceiptDraft,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    signed_effect,
)
from finance_ledger.scheduling import RecurringInterval


def make_draft(**overrides) -> TransactionDraft:
    data = {
        "account_id": uuid4(),
        "type": TransactionType.EXPENSE,
        "amount": Decimal("30.00"),
        "date": date(2024, 3, 1),
        "category": "groceries",
    }
    data.update(overrides)
    return TransactionDraft(**data)


class TestIdentity:
    """Tests for caller identity values."""

    def test_anonymous_identity(self):
        """Test anonymous identity carries no user id."""
        identity = Identity.anonymous()
        assert identity.is_authenticated is False
        assert identity.external_user_id is None

    def test_authenticated_identity_is_frozen(self):
        """Test identities cannot be modified after creation."""
        identity = Identity.authenticated("user_1")
        with pytest.raises(ValidationError):
            identity.external_user_id = "user_2"


class TestAccountModel:
    """Tests for the Account model."""

    def test_balance_is_quantized(self):
        """Test balance is stored with two decimal places."""
        account = Account(user_id=uuid4(), name="Main", balance=Decimal("10.005"))
        assert account.balance == Decimal("10.01")

    def test_account_defaults(self):
        """Test default account type and currency."""
        account = Account(user_id=uuid4(), name="  Main  ")
        assert account.name == "Main"
        assert account.balance == Decimal("0.00")
        assert account.currency == "USD"
        assert account.is_default is False


class TestTransactionDraft:
    """Tests for TransactionDraft validation."""

    def test_expense_effect_is_negative(self):
        """Test an expense reduces the balance."""
        draft = make_draft()
        assert draft.effect == Decimal("-30.00")

    def test_income_effect_is_positive(self):
        """Test an income increases the balance."""
        draft = make_draft(type=TransactionType.INCOME, amount=Decimal("20"))
        assert draft.effect == Decimal("20.00")

    def test_rejects_zero_amount(self):
        """Test zero amounts are rejected."""
        with pytest.raises(ValidationError):
            make_draft(amount=Decimal("0"))

    def test_rejects_negative_amount(self):
        """Test negative amounts are rejected."""
        with pytest.raises(ValidationError):
            make_draft(amount=Decimal("-5"))

    def test_rejects_amount_rounding_to_zero(self):
        """Test sub-cent amounts that round to zero are rejected."""
        with pytest.raises(ValidationError):
            make_draft(amount=Decimal("0.004"))

    def test_rejects_amount_above_column_range(self):
        """Test amounts beyond the storable range are field errors."""
        for amount in ["1e30", "99999999999999999999999999999", "10000000000000000.00"]:
            with pytest.raises(ValidationError) as exc_info:
                make_draft(amount=amount)
            assert exc_info.value.errors()[0]["loc"] == ("amount",)

    def test_accepts_largest_amount(self):
        """Test the largest storable amount is accepted."""
        draft = make_draft(amount=MAX_AMOUNT)
        assert draft.amount == MAX_AMOUNT

    def test_rejects_empty_category(self):
        """Test category is required."""
        with pytest.raises(ValidationError):
            make_draft(category="   ")

    def test_rejects_unknown_interval(self):
        """Test recurring_interval must be a known interval."""
        with pytest.raises(ValidationError):
            make_draft(is_recurring=True, recurring_interval="HOURLY")

    def test_next_recurring_date(self):
        """Test next date is one interval after the transaction date."""
        draft = make_draft(
            date=date(2024, 1, 31),
            is_recurring=True,
            recurring_interval=RecurringInterval.MONTHLY,
        )
        assert draft.next_recurring_date == date(2024, 2, 29)

    def test_interval_without_recurring_flag(self):
        """Test an interval alone does not schedule anything."""
        draft = make_draft(recurring_interval=RecurringInterval.WEEKLY)
        assert draft.next_recurring_date is None


class TestTransactionModel:
    """Tests for committed Transaction records."""

    def test_from_draft_sets_recurrence(self):
        """Test from_draft derives next_recurring_date."""
        user_id = uuid4()
        draft = make_draft(is_recurring=True, recurring_interval=RecurringInterval.WEEKLY)
        transaction = Transaction.from_draft(draft, user_id=user_id)

        assert transaction.user_id == user_id
        assert transaction.account_id == draft.account_id
        assert transaction.next_recurring_date == date(2024, 3, 8)

    def test_rejects_inconsistent_next_date(self):
        """Test next_recurring_date must match date and interval."""
        with pytest.raises(ValidationError):
            Transaction(
                user_id=uuid4(),
                account_id=uuid4(),
                type=TransactionType.EXPENSE,
                amount=Decimal("1"),
                date=date(2024, 3, 1),
                category="food",
                is_recurring=True,
                recurring_interval=RecurringInterval.DAILY,
                next_recurring_date=date(2024, 3, 5),
            )

    def test_rejects_next_date_when_not_recurring(self):
        """Test non-recurring transactions have no next date."""
        with pytest.raises(ValidationError):
            Transaction(
                user_id=uuid4(),
                account_id=uuid4(),
                type=TransactionType.EXPENSE,
                amount=Decimal("1"),
                date=date(2024, 3, 1),
                category="food",
                next_recurring_date=date(2024, 3, 2),
            )

    def test_apply_draft_keeps_identity(self):
        """Test apply_draft keeps id, owner and creation time."""
        original = Transaction.from_draft(make_draft(), user_id=uuid4())
        changed = original.apply_draft(
            make_draft(amount=Decimal("12.50"), category="food")
        )

        assert changed.id == original.id
        assert changed.user_id == original.user_id
        assert changed.created_at == original.created_at
        assert changed.amount == Decimal("12.50")
        assert changed.updated_at >= original.updated_at

    def test_apply_draft_clears_recurrence(self):
        """Test turning recurrence off clears the next date."""
        original = Transaction.from_draft(
            make_draft(is_recurring=True, recurring_interval=RecurringInterval.DAILY),
            user_id=uuid4(),
        )
        changed = original.apply_draft(make_draft())
        assert changed.is_recurring is False
        assert changed.next_recurring_date is None

    def test_to_log_dict(self):
        """Test log representation uses plain strings."""
        transaction = Transaction.from_draft(make_draft(), user_id=uuid4())
        log_dict = transaction.to_log_dict()
        assert log_dict["transaction_id"] == str(transaction.id)
        assert log_dict["amount"] == "30.00"
        assert log_dict["type"] == "EXPENSE"

    def test_signed_effect(self):
        """Test effect helper."""
        assert signed_effect(TransactionType.EXPENSE, Decimal("5")) == Decimal("-5")
        assert signed_effect(TransactionType.INCOME, Decimal("5")) == Decimal("5")


class TestTransactionFilter:
    """Tests for listing filters."""

    def test_empty_filter_matches_everything(self):
        """Test an empty filter narrows nothing."""
        transaction = Transaction.from_draft(make_draft(), user_id=uuid4())
        assert TransactionFilter().matches(transaction)

    def test_date_range_is_inclusive(self):
        """Test date bounds include both ends."""
        transaction = Transaction.from_draft(make_draft(), user_id=uuid4())
        same_day = TransactionFilter(date_from=date(2024, 3, 1), date_to=date(2024, 3, 1))
        assert same_day.matches(transaction)
        assert not TransactionFilter(date_from=date(2024, 3, 2)).matches(transaction)

    def test_rejects_reversed_range(self):
        """Test date_to before date_from is rejected."""
        with pytest.raises(ValidationError):
            TransactionFilter(date_from=date(2024, 3, 2), date_to=date(2024, 3, 1))

    def test_filters_on_type_and_recurrence(self):
        """Test type and recurrence narrowing."""
        transaction = Transaction.from_draft(make_draft(), user_id=uuid4())
        assert TransactionFilter(type=TransactionType.EXPENSE).matches(transaction)
        assert not TransactionFilter(type=TransactionType.INCOME).matches(transaction)
        assert not TransactionFilter(is_recurring=True).matches(transaction)


class TestReceiptModels:
    """Tests for receipt drafts and categories."""

    def test_all_categories_exist(self):
        """Test the category allow-list."""
        assert len(ExpenseCategory) == 15
        assert "other-expense" in RECEIPT_CATEGORIES
        assert "groceries" in RECEIPT_CATEGORIES

    def test_merchant_name_alias(self):
        """Test merchantName is accepted by alias and by field name."""
        by_alias = ReceiptDraft(amount=Decimal("1"), date=date(2024, 1, 1), merchantName="Shop")
        by_name = ReceiptDraft(amount=Decimal("1"), date=date(2024, 1, 1), merchant_name="Shop")
        assert by_alias.merchant_name == by_name.merchant_name == "Shop"

    def test_to_transaction_draft(self):
        """Test a reviewed receipt becomes an expense draft."""
        receipt = ReceiptDraft(
            amount=Decimal("23.40"),
            date=date(2024, 3, 1),
            merchantName="Corner Market",
            category=ExpenseCategory.GROCERIES,
        )
        account_id = uuid4()
        draft = receipt.to_transaction_draft(account_id)

        assert draft.type is TransactionType.EXPENSE
        assert draft.account_id == account_id
        assert draft.amount == Decimal("23.40")
        assert draft.category == "groceries"
        assert draft.description == "Corner Market"

    def test_to_transaction_draft_reports_long_description(self):
        """Test an oversized description is a typed validation failure."""
        receipt = ReceiptDraft(amount=Decimal("5"), date=date(2024, 3, 1))
        with pytest.raises(ValidationFailedError) as exc_info:
            receipt.to_transaction_draft(uuid4(), description="x" * 600)
        assert exc_info.value.field == "description"

    def test_to_transaction_draft_refuses_zero_amount(self):
        """Test an unread amount must be fixed before saving."""
        receipt = ReceiptDraft(amount=Decimal("0"), date=date(2024, 3, 1))
        with pytest.raises(ValidationFailedError) as exc_info:
            receipt.to_transaction_draft(uuid4())
        assert exc_info.value.field == "amount"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
