"""
Receipt Scanner

Orchestrates one receipt scan:
1. Check the upload (present, supported type, within size limit)
2. Extraction client → raw text
3. Structural parse → untrusted record (fails hard)
4. Field sanitization → ReceiptDraft (fails soft, except the date)

The scanner NEVER persists anything. Its output is shown to the user,
who turns it into a TransactionDraft for the mutation engine.
"""

from typing import Optional

from finance_ledger.config import get_settings
from finance_ledger.errors import ValidationFailedError
from finance_ledger.logger import get_logger
from finance_ledger.models.receipt import ReceiptDraft
from finance_ledger.normalization import ReceiptNormalizer, parse_extraction_text
from finance_ledger.services.extraction.gemini_client import ExtractionClientInterface


logger = get_logger(__name__)


class ReceiptScanner:
    """
    Turns receipt documents into reviewable drafts.

    The extraction client is passed in explicitly; use
    get_extraction_client() to obtain the shared one.
    """

    def __init__(
        self,
        client: ExtractionClientInterface,
        normalizer: Optional[ReceiptNormalizer] = None,
    ):
        self._client = client
        self._normalizer = normalizer or ReceiptNormalizer()
        self._settings = get_settings().app

    def _check_upload(self, data: bytes, mime_type: str) -> str:
        if not data:
            raise ValidationFailedError("No file received", field="file")

        kind = (mime_type or "").strip().lower()
        if kind not in self._settings.supported_types_list:
            raise ValidationFailedError(
                f"Unsupported receipt type: {mime_type or 'unknown'}",
                field="mime_type",
            )

        if len(data) > self._settings.max_upload_size_bytes:
            raise ValidationFailedError(
                f"Receipt is larger than {self._settings.max_upload_size_mb} MB",
                field="file",
            )

        return kind

    async def scan(self, data: bytes, mime_type: str) -> ReceiptDraft:
        """
        Scan a receipt.

        Raises:
            ValidationFailedError: Bad upload, or unreadable receipt date
            ExtractionFailedError: Extraction service failed
            ExtractionParseFailedError: Extraction text was not a JSON object
        """
        kind = self._check_upload(data, mime_type)

        text = await self._client.extract_text(data, kind)
        record = parse_extraction_text(text)
        draft = self._normalizer.normalize(record)

        logger.info(
            "receipt_scanned",
            mime_type=kind,
            size_bytes=len(data),
            amount=str(draft.amount),
            category=draft.category.value,
            date=draft.date.isoformat(),
        )
        return draft
