"""
Receipt Normalization Pipeline

DESIGN DECISION: Extraction output is handled in two distinct stages:

STAGE 1 - STRUCTURAL PARSE (fails hard):
- Strip markdown code fences the model may wrap around its answer
- Parse JSON
- Require a JSON object
- Any failure raises ExtractionParseFailedError

STAGE 2 - FIELD SANITIZATION (fails soft, per field):
- amount: non-negative Decimal, anything unreadable or out of range becomes 0
- category: exact allow-list match, anything else becomes "other-expense"
- description / merchantName: strings cut to the ledger limit, anything else
  becomes ""
- date: calendar date, anything unreadable raises ValidationFailedError

WHY the date is strict: a zero amount is obviously wrong to a reviewer
and harmless to the ledger. A defaulted date looks plausible and would
silently misfile the expense.

Every rule is idempotent: normalizing an already-normalized record
returns the same draft.
"""

import json
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from finance_ledger.errors import ExtractionParseFailedError, ValidationFailedError
from finance_ledger.logger import get_logger
from finance_ledger.models.ledger import DESCRIPTION_MAX_LENGTH, MAX_AMOUNT, to_money
from finance_ledger.models.receipt import (
    RECEIPT_CATEGORIES,
    ExpenseCategory,
    ReceiptDraft,
)


logger = get_logger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?")

# Tried in order after ISO-8601
DATE_FORMATS = ["%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d"]


def parse_extraction_text(text: Any) -> dict:
    """
    Stage 1: turn raw extraction text into an untrusted record.

    Raises:
        ExtractionParseFailedError: If the text is not a JSON object
    """
    if not isinstance(text, str):
        raise ExtractionParseFailedError(
            f"Expected extraction text, got {type(text).__name__}"
        )

    cleaned = CODE_FENCE.sub("", text).strip()
    if not cleaned:
        raise ExtractionParseFailedError("Extraction returned no content")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionParseFailedError(
            f"Extraction output is not valid JSON: {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise ExtractionParseFailedError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    return data


class ReceiptNormalizer:
    """
    Stage 2: sanitize an untrusted receipt record into a ReceiptDraft.

    Never touches storage. The output feeds the mutation engine the
    same way a user-authored draft does, after review.
    """

    def normalize(self, record: Mapping) -> ReceiptDraft:
        """
        Apply the per-field rules.

        Raises:
            ValidationFailedError: If the date is missing or unparseable
        """
        if not isinstance(record, Mapping):
            raise ValidationFailedError(
                "Receipt record must be an object",
                field="record",
            )

        draft = ReceiptDraft(
            amount=self.coerce_amount(record.get("amount")),
            date=self.coerce_date(record.get("date")),
            description=self.coerce_text(record.get("description")),
            merchant_name=self.coerce_text(record.get("merchantName")),
            category=self.coerce_category(record.get("category")),
        )

        raw_category = record.get("category")
        if raw_category != draft.category.value:
            logger.info(
                "receipt_category_defaulted",
                raw_category=str(raw_category)[:50],
            )

        return draft

    @staticmethod
    def coerce_amount(value: Any) -> Decimal:
        """Non-negative amount, or 0 when it can't be read."""
        zero = Decimal("0.00")

        if value is None or isinstance(value, bool):
            return zero

        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float, str)):
            try:
                amount = Decimal(str(value).strip())
            except InvalidOperation:
                return zero
        else:
            return zero

        if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
            return zero

        try:
            return to_money(amount)
        except InvalidOperation:
            return zero

    @staticmethod
    def coerce_category(value: Any) -> ExpenseCategory:
        """Exact, case-sensitive allow-list check."""
        if isinstance(value, str) and value in RECEIPT_CATEGORIES:
            return ExpenseCategory(value)
        return ExpenseCategory.OTHER_EXPENSE

    @staticmethod
    def coerce_text(value: Any) -> str:
        """String cut to the ledger description limit, else empty."""
        if isinstance(value, str):
            return value[:DESCRIPTION_MAX_LENGTH]
        return ""

    @staticmethod
    def coerce_date(value: Any) -> date:
        """
        Calendar date from a date, datetime or date string.

        Raises:
            ValidationFailedError: If no date can be read
        """
        if value is None or value == "":
            raise ValidationFailedError("Receipt date is missing", field="date")

        # datetime is a subclass of date, so check it first
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        if isinstance(value, str):
            text = value.strip()
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            except ValueError:
                pass
            for fmt in DATE_FORMATS:
                try:
                    return datetime.strptime(text, fmt).date()
                except ValueError:
                    continue

        raise ValidationFailedError(
            f"Receipt date could not be read: {str(value)[:40]!r}",
            field="date",
        )
