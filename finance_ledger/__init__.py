"""
Finance Ledger - Source Package

A personal finance ledger that keeps account balances consistent
with the transaction history.

DESIGN PRINCIPLES:
1. Balance and transaction rows change together or not at all
2. Every mutation passes the admission gate first
3. Untrusted extraction output is parsed strictly, then sanitized
4. Identity is passed explicitly, never read from ambient state
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Ledger Team"
