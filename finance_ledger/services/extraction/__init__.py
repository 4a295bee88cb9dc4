"""Receipt extraction services package."""

from finance_ledger.services.extraction.gemini_client import (
    RECEIPT_PROMPT,
    ExtractionClientInterface,
    GeminiReceiptClient,
    get_extraction_client,
)
from finance_ledger.services.extraction.scanner import ReceiptScanner

__all__ = [
    "RECEIPT_PROMPT",
    "ExtractionClientInterface",
    "GeminiReceiptClient",
    "ReceiptScanner",
    "get_extraction_client",
]
