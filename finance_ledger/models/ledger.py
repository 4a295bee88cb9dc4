"""
Core Data Models for Finance Ledger

These models define the strict schemas for all ledger data.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Keep money in Decimal, never float
4. Carry the recurrence invariant with the record itself

DESIGN DECISION: Records are treated as values. Storage hands out
copies, and changes go through the mutation engine, which builds new
records rather than editing stored ones in place.
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from finance_ledger.scheduling import RecurringInterval, next_occurrence


CENT = Decimal("0.01")

# Largest value a Numeric(18, 2) column holds
MAX_AMOUNT = Decimal("9999999999999999.99")

DESCRIPTION_MAX_LENGTH = 500


def to_money(value: Decimal) -> Decimal:
    """Quantize a Decimal to two places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_amount_value(value: Decimal) -> Decimal:
    """
    to_money for validators: out-of-range values raise ValueError,
    which pydantic reports as a field error.
    """
    try:
        return to_money(value)
    except InvalidOperation:
        raise ValueError("Amount is too large")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction's effect on its account."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class AccountType(str, Enum):
    """Kind of account; metadata only."""
    CURRENT = "CURRENT"
    SAVINGS = "SAVINGS"


def signed_effect(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """
    Signed contribution of a transaction to its account's balance.

    +amount for income, -amount for expense.
    """
    if TransactionType(transaction_type) is TransactionType.EXPENSE:
        return -amount
    return amount


# =============================================================================
# IDENTITY
# =============================================================================

class Identity(BaseModel):
    """
    Caller identity as supplied by the identity collaborator.

    Passed explicitly into every ledger operation.
    """
    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    external_user_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls(is_authenticated=False)

    @classmethod
    def authenticated(cls, external_user_id: str) -> "Identity":
        return cls(is_authenticated=True, external_user_id=external_user_id)


class User(BaseModel):
    """A ledger owner. Immutable once created."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    external_id: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Stable identity token from the identity provider"
    )
    created_at: dt.datetime = Field(default_factory=utc_now)


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """
    A named balance holder.

    CRITICAL: balance always equals the sum of the signed effects of the
    account's transactions. Only the mutation engine changes it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    balance: Decimal = Field(default=Decimal("0.00"))
    account_type: AccountType = AccountType.CURRENT
    currency: str = Field(default="USD", min_length=3, max_length=3)
    is_default: bool = False
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @field_validator("balance")
    @classmethod
    def quantize_balance(cls, v: Decimal) -> Decimal:
        return quantize_amount_value(v)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction pending commit.

    Both user-authored drafts and drafts converted from scanned
    receipts reach the mutation engine in this shape.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: UUID
    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        description="Positive magnitude"
    )
    date: dt.date
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        v = quantize_amount_value(v)
        if v <= 0:
            raise ValueError("Amount must be at least 0.01")
        return v

    @property
    def effect(self) -> Decimal:
        return signed_effect(self.type, self.amount)

    @property
    def next_recurring_date(self) -> Optional[dt.date]:
        """Next occurrence if this draft recurs, else None."""
        if self.is_recurring and self.recurring_interval:
            return next_occurrence(self.date, self.recurring_interval)
        return None


class Transaction(BaseModel):
    """
    A committed ledger entry.

    Updated in place on edit; next_recurring_date is derived from
    date and recurring_interval and validated on construction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    account_id: UUID
    type: TransactionType
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    date: dt.date
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    next_recurring_date: Optional[dt.date] = None
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return quantize_amount_value(v)

    @model_validator(mode="after")
    def validate_recurrence(self) -> "Transaction":
        """next_recurring_date is set iff the transaction recurs."""
        expected = None
        if self.is_recurring and self.recurring_interval:
            expected = next_occurrence(self.date, self.recurring_interval)
        if self.next_recurring_date != expected:
            raise ValueError(
                "next_recurring_date must be one interval after date "
                "for recurring transactions and empty otherwise"
            )
        return self

    @property
    def effect(self) -> Decimal:
        return signed_effect(self.type, self.amount)

    @classmethod
    def from_draft(cls, draft: TransactionDraft, user_id: UUID) -> "Transaction":
        """Build a new transaction owned by user_id from a draft."""
        return cls(
            user_id=user_id,
            next_recurring_date=draft.next_recurring_date,
            **draft.model_dump(),
        )

    def apply_draft(self, draft: TransactionDraft) -> "Transaction":
        """Return this transaction overwritten with the draft's fields."""
        data = self.model_dump()
        data.update(draft.model_dump())
        data["next_recurring_date"] = draft.next_recurring_date
        data["updated_at"] = utc_now()
        return Transaction(**data)

    def to_log_dict(self) -> dict:
        """Compact representation for structured logs."""
        return {
            "transaction_id": str(self.id),
            "account_id": str(self.account_id),
            "type": self.type.value,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "category": self.category,
            "is_recurring": self.is_recurring,
        }


class TransactionFilter(BaseModel):
    """
    Narrowing predicate for transaction listings.

    Every field is optional; an empty filter matches everything.
    Date bounds are inclusive.
    """

    account_id: Optional[UUID] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    category: Optional[str] = None
    type: Optional[TransactionType] = None
    is_recurring: Optional[bool] = None

    @model_validator(mode="after")
    def validate_range(self) -> "TransactionFilter":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self

    def matches(self, transaction: Transaction) -> bool:
        if self.account_id and transaction.account_id != self.account_id:
            return False
        if self.date_from and transaction.date < self.date_from:
            return False
        if self.date_to and transaction.date > self.date_to:
            return False
        if self.category and transaction.category != self.category:
            return False
        if self.type and transaction.type != self.type:
            return False
        if self.is_recurring is not None and transaction.is_recurring != self.is_recurring:
            return False
        return True
