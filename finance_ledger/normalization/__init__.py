"""Receipt normalization package."""

from finance_ledger.normalization.receipt import (
    ReceiptNormalizer,
    parse_extraction_text,
)

__all__ = ["ReceiptNormalizer", "parse_extraction_text"]
