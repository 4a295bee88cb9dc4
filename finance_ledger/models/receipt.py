"""
Receipt Models

A ReceiptDraft is what survives normalization of untrusted extraction
output. It is still PROPOSED data: the user reviews it, and only a
TransactionDraft built from it reaches the ledger.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from finance_ledger.errors import ValidationFailedError
from finance_ledger.models.ledger import MAX_AMOUNT, TransactionDraft, TransactionType
from finance_ledger.scheduling import RecurringInterval


class ExpenseCategory(str, Enum):
    """
    Categories a scanned receipt may be filed under.

    DESIGN DECISION: This is the allow-list between the extraction
    model and the ledger's taxonomy. Matching is exact and
    case-sensitive; anything else becomes OTHER_EXPENSE.
    """
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    FOOD = "food"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    PERSONAL = "personal"
    TRAVEL = "travel"
    INSURANCE = "insurance"
    GIFTS = "gifts"
    BILLS = "bills"
    OTHER_EXPENSE = "other-expense"


RECEIPT_CATEGORIES: frozenset[str] = frozenset(c.value for c in ExpenseCategory)


class ReceiptDraft(BaseModel):
    """Sanitized receipt fields, ready for user review."""
    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal = Field(
        ...,
        ge=0,
        le=MAX_AMOUNT,
        description="Total amount; 0 when it could not be read"
    )
    date: dt.date
    description: str = ""
    merchant_name: str = Field(default="", alias="merchantName")
    category: ExpenseCategory = ExpenseCategory.OTHER_EXPENSE

    def to_record(self) -> dict:
        """Plain dict in the extraction record's field names."""
        return {
            "amount": self.amount,
            "date": self.date,
            "description": self.description,
            "merchantName": self.merchant_name,
            "category": self.category.value,
        }

    def to_transaction_draft(
        self,
        account_id: UUID,
        description: Optional[str] = None,
        is_recurring: bool = False,
        recurring_interval: Optional[RecurringInterval] = None,
    ) -> TransactionDraft:
        """
        Turn the reviewed receipt into an expense draft.

        Raises:
            ValidationFailedError: If the amount is still zero, or a
                field does not fit the ledger
        """
        if self.amount <= 0:
            raise ValidationFailedError(
                "Receipt amount could not be read; enter it before saving",
                field="amount",
            )

        if description is None:
            description = self.description or self.merchant_name

        try:
            return TransactionDraft(
                account_id=account_id,
                type=TransactionType.EXPENSE,
                amount=self.amount,
                date=self.date,
                category=self.category.value,
                description=description,
                is_recurring=is_recurring,
                recurring_interval=recurring_interval,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise ValidationFailedError(
                f"Invalid receipt: {field or 'draft'}: {first['msg']}",
                field=field,
            ) from e
