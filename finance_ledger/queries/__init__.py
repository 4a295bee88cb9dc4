"""Query package."""

from finance_ledger.queries.service import TransactionQueryService

__all__ = ["TransactionQueryService"]
