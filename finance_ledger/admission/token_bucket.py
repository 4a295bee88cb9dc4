"""
In-process token bucket admission.

Keeps one bucket per user key in memory. Good enough for a single
process and for tests; a multi-process deployment should put a shared
rate-limiting service behind AdmissionInterface instead.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from finance_ledger.admission.gate import AdmissionDecision, AdmissionInterface
from finance_ledger.config import get_settings


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class TokenBucketAdmission(AdmissionInterface):
    """
    Token bucket per user key, plus a policy block list.

    Each key starts full. Every refill_interval_seconds the bucket gains
    refill_amount tokens (continuously, pro rata), up to capacity.
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        refill_amount: Optional[int] = None,
        refill_interval_seconds: Optional[float] = None,
        blocked_keys: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings().admission
        self.capacity = capacity if capacity is not None else settings.capacity
        self.refill_amount = (
            refill_amount if refill_amount is not None else settings.refill_amount
        )
        self.refill_interval_seconds = (
            refill_interval_seconds
            if refill_interval_seconds is not None
            else settings.refill_interval_seconds
        )
        self._blocked = set(blocked_keys)
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = asyncio.Lock()

    @property
    def _rate(self) -> float:
        """Tokens gained per second."""
        return self.refill_amount / self.refill_interval_seconds

    def block(self, user_key: str) -> None:
        self._blocked.add(user_key)

    def unblock(self, user_key: str) -> None:
        self._blocked.discard(user_key)

    async def protect(self, user_key: str, cost: int) -> AdmissionDecision:
        if user_key in self._blocked:
            return AdmissionDecision.blocked()

        async with self._lock:
            now = self._clock()
            bucket = self._buckets.get(user_key)
            if bucket is None:
                bucket = _Bucket(tokens=float(self.capacity), updated_at=now)
                self._buckets[user_key] = bucket

            elapsed = max(0.0, now - bucket.updated_at)
            bucket.tokens = min(float(self.capacity), bucket.tokens + elapsed * self._rate)
            bucket.updated_at = now

            if bucket.tokens >= cost:
                bucket.tokens -= cost
                return AdmissionDecision.allow(remaining=math.floor(bucket.tokens))

            missing = cost - bucket.tokens
            return AdmissionDecision.rate_limited(
                remaining=math.floor(bucket.tokens),
                reset_after=missing / self._rate,
            )
