"""
Data Models Package

This package contains all Pydantic models used in the Finance Ledger.
All data flowing through the system must conform to these schemas.
"""

from finance_ledger.models.ledger import (
    DESCRIPTION_MAX_LENGTH,
    MAX_AMOUNT,
    Account,
    AccountType,
    Identity,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    User,
    signed_effect,
    to_money,
)
from finance_ledger.models.receipt import (
    RECEIPT_CATEGORIES,
    ExpenseCategory,
    ReceiptDraft,
)

__all__ = [
    # Ledger models
    "DESCRIPTION_MAX_LENGTH",
    "MAX_AMOUNT",
    "Account",
    "AccountType",
    "Identity",
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionType",
    "User",
    "signed_effect",
    "to_money",
    # Receipt models
    "RECEIPT_CATEGORIES",
    "ExpenseCategory",
    "ReceiptDraft",
]
