"""
Main Orchestrator for Finance Ledger

This module wires the components together:
1. Storage (relational store from settings)
2. Admission (token bucket behind the gate, with a timeout)
3. Mutation engine and query service over the same storage
4. Receipt scanner (only when Gemini is configured)

DESIGN DECISION: Every collaborator is built exactly once here and
passed down explicitly. No component reaches for a global client of
its own, so tests can build the same graph with fakes.
"""

from typing import Optional

from finance_ledger.admission import AdmissionGate, AdmissionInterface, TokenBucketAdmission
from finance_ledger.config import get_settings
from finance_ledger.ledger import LedgerMutationEngine
from finance_ledger.logger import configure_logging, get_logger
from finance_ledger.queries import TransactionQueryService
from finance_ledger.services.extraction import ReceiptScanner, get_extraction_client
from finance_ledger.services.storage import (
    LedgerStorageInterface,
    SqlAlchemyLedgerStorage,
)


logger = get_logger(__name__)


def create_app_components(
    with_receipts: bool = True,
    storage: Optional[LedgerStorageInterface] = None,
    protector: Optional[AdmissionInterface] = None,
) -> tuple[
    LedgerMutationEngine,
    TransactionQueryService,
    Optional[ReceiptScanner],
    LedgerStorageInterface,
]:
    """
    Factory function to create all application components.

    Args:
        with_receipts: Whether to build the Gemini receipt scanner.
                       Set to False to run without an API key.
        storage: Use this store instead of the configured database.
        protector: Use this admission policy instead of the token bucket.

    Returns:
        (mutation_engine, query_service, receipt_scanner, storage)
    """
    settings = get_settings()
    configure_logging(debug=settings.app.debug_mode)

    if storage is None:
        db = settings.database
        storage = SqlAlchemyLedgerStorage.from_url(db.url, echo=db.echo)
        storage.create_schema()

    admission = settings.admission
    gate = AdmissionGate(
        protector or TokenBucketAdmission(),
        timeout_seconds=admission.timeout_seconds,
    )

    engine = LedgerMutationEngine(
        storage,
        gate,
        cost_per_mutation=admission.cost_per_mutation,
    )
    query_service = TransactionQueryService(storage)

    receipt_scanner = None
    if with_receipts:
        try:
            receipt_scanner = ReceiptScanner(get_extraction_client())
        except Exception as e:
            # Gemini not configured - ledger still works without receipts
            logger.warning("receipt_scanning_disabled", error=str(e))
            receipt_scanner = None

    logger.info(
        "app_components_ready",
        environment=settings.app.app_environment,
        storage=type(storage).__name__,
        receipts_enabled=receipt_scanner is not None,
    )
    return engine, query_service, receipt_scanner, storage
