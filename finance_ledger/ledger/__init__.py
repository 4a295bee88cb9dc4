"""Ledger mutation package."""

from finance_ledger.ledger.engine import LedgerMutationEngine, coerce_draft

__all__ = ["LedgerMutationEngine", "coerce_draft"]
