"""
Receipt Extraction using Gemini

DESIGN DECISION: The model is an opaque text producer. This module only
sends the receipt bytes and a prompt and returns whatever text comes
back. Parsing and sanitizing that text is the normalizer's job, because
the model's output is untrusted no matter what the prompt says.

The client is built ONCE per process by get_extraction_client() and
handed to whoever needs it. Nothing reconfigures or rebuilds it per
request.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_ledger.config import GeminiSettings, get_settings
from finance_ledger.errors import ExtractionFailedError
from finance_ledger.logger import get_logger
from finance_ledger.models.receipt import ExpenseCategory


logger = get_logger(__name__)


RECEIPT_PROMPT = f"""You are an expert receipt parser. Extract fields ONLY in valid JSON.

VALID CATEGORIES: {[c.value for c in ExpenseCategory]}

RULES:
- Pick the best matching category from the list.
- If unsure, ALWAYS choose "other-expense".
- Do NOT invent new category names.
- Respond ONLY in pure JSON. No explanation.

RETURN JSON IN THIS EXACT FORMAT:
{{
  "amount": number,
  "date": "ISO string",
  "description": "string",
  "merchantName": "string",
  "category": "string"
}}"""


class ExtractionClientInterface(ABC):
    """Abstract extraction collaborator: document bytes in, text out."""

    @abstractmethod
    async def extract_text(self, data: bytes, mime_type: str) -> str:
        """
        Read a receipt document.

        Args:
            data: Raw document bytes
            mime_type: Declared media type (e.g. image/jpeg)

        Returns:
            Unstructured text produced by the extraction model

        Raises:
            ExtractionFailedError: If the service fails or returns nothing
        """
        pass


class GeminiReceiptClient(ExtractionClientInterface):
    """
    Gemini-backed receipt reader.

    Treat instances as immutable; share one per process.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def model_name(self) -> str:
        return self._settings.model_name

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, data: bytes, mime_type: str):
        return await self._model.generate_content_async([
            {"mime_type": mime_type, "data": data},
            RECEIPT_PROMPT,
        ])

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        try:
            response = await self._generate(data, mime_type)
            text = response.text
        except Exception as e:
            logger.error(
                "receipt_extraction_failed",
                model=self.model_name,
                error=str(e),
            )
            raise ExtractionFailedError(f"Failed to scan receipt: {e}") from e

        if not text or not text.strip():
            raise ExtractionFailedError("Failed to scan receipt: empty response")

        return text.strip()


@lru_cache()
def get_extraction_client() -> GeminiReceiptClient:
    """
    Get the process-wide extraction client (built on first use).

    Call get_extraction_client.cache_clear() to rebuild if needed.
    """
    client = GeminiReceiptClient()
    logger.info("extraction_client_ready", model=client.model_name)
    return client
