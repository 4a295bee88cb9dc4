"""
Error Taxonomy

Every failure in the ledger surfaces as one of these typed errors
with a human-readable message. Nothing is silently swallowed except
the two documented receipt defaults (amount and category).
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnauthorizedError(LedgerError):
    """Caller has no valid identity."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class UserNotFoundError(LedgerError):
    """Authenticated identity has no matching user record."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class NotFoundError(LedgerError):
    """Account or transaction is absent or not owned by the caller."""
    pass


class RateLimitedError(LedgerError):
    """Admission gate denied the request for quota reasons."""

    def __init__(
        self,
        remaining: Optional[int] = None,
        reset_after: Optional[float] = None,
        message: str = "Too many requests. Please try again later.",
    ):
        self.remaining = remaining
        self.reset_after = reset_after
        super().__init__(message)


class BlockedError(LedgerError):
    """Admission gate denied the request for policy reasons."""

    def __init__(self, message: str = "Request blocked"):
        super().__init__(message)


class ValidationFailedError(LedgerError):
    """A draft or an extracted field could not be accepted."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ExtractionFailedError(LedgerError):
    """The extraction service failed or returned no text."""
    pass


class ExtractionParseFailedError(LedgerError):
    """Extraction text could not be parsed as a receipt record."""
    pass


class StoreFailureError(LedgerError):
    """The underlying atomic write could not commit."""
    pass
