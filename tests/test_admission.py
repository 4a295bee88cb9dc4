"""Tests for the admission gate and the token bucket collaborator."""

import asyncio

import pytest

from finance_ledger.admission import (
    AdmissionDecision,
    AdmissionGate,
    AdmissionInterface,
    DenialReason,
    TokenBucketAdmission,
)
from finance_ledger.errors import BlockedError, RateLimitedError


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class SlowAdmission(AdmissionInterface):
    async def protect(self, user_key, cost):
        await asyncio.sleep(5)
        return AdmissionDecision.allow()


class BrokenAdmission(AdmissionInterface):
    async def protect(self, user_key, cost):
        raise ConnectionError("rate limiter unreachable")


class FixedAdmission(AdmissionInterface):
    def __init__(self, decision):
        self.decision = decision

    async def protect(self, user_key, cost):
        return self.decision


class TestTokenBucket:
    """Tests for the in-process token bucket."""

    @pytest.mark.asyncio
    async def test_new_key_starts_full(self):
        """Test a fresh user may spend the whole capacity."""
        bucket = TokenBucketAdmission(capacity=3, refill_amount=3, refill_interval_seconds=60, clock=FakeClock())

        decisions = [await bucket.protect("u1", 1) for _ in range(3)]
        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    @pytest.mark.asyncio
    async def test_exhausted_bucket_is_rate_limited(self):
        """Test spending past capacity is denied with reset info."""
        bucket = TokenBucketAdmission(capacity=2, refill_amount=2, refill_interval_seconds=60, clock=FakeClock())
        await bucket.protect("u1", 1)
        await bucket.protect("u1", 1)

        decision = await bucket.protect("u1", 1)
        assert not decision.allowed
        assert decision.reason is DenialReason.RATE_LIMITED
        assert decision.remaining == 0
        assert decision.reset_after == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_refills_over_time(self):
        """Test tokens come back as the clock advances."""
        clock = FakeClock()
        bucket = TokenBucketAdmission(capacity=2, refill_amount=2, refill_interval_seconds=60, clock=clock)
        await bucket.protect("u1", 2)
        assert not (await bucket.protect("u1", 1)).allowed

        clock.now += 30
        assert (await bucket.protect("u1", 1)).allowed

    @pytest.mark.asyncio
    async def test_refill_is_capped(self):
        """Test an idle bucket never exceeds capacity."""
        clock = FakeClock()
        bucket = TokenBucketAdmission(capacity=2, refill_amount=2, refill_interval_seconds=60, clock=clock)
        await bucket.protect("u1", 1)
        clock.now += 10_000

        decision = await bucket.protect("u1", 1)
        assert decision.remaining == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        """Test one user's spending does not affect another."""
        bucket = TokenBucketAdmission(capacity=1, refill_amount=1, refill_interval_seconds=60, clock=FakeClock())
        assert (await bucket.protect("u1", 1)).allowed
        assert (await bucket.protect("u2", 1)).allowed
        assert not (await bucket.protect("u1", 1)).allowed

    @pytest.mark.asyncio
    async def test_blocked_keys(self):
        """Test policy blocks are denials of their own kind."""
        bucket = TokenBucketAdmission(capacity=5, blocked_keys=["bad"], clock=FakeClock())
        decision = await bucket.protect("bad", 1)
        assert decision.reason is DenialReason.BLOCKED

        bucket.unblock("bad")
        assert (await bucket.protect("bad", 1)).allowed

        bucket.block("u1")
        assert (await bucket.protect("u1", 1)).reason is DenialReason.BLOCKED


class TestAdmissionGate:
    """Tests for the gate's error mapping and fail-closed behavior."""

    @pytest.mark.asyncio
    async def test_admit_allows(self):
        """Test an allow decision is returned."""
        gate = AdmissionGate(FixedAdmission(AdmissionDecision.allow(remaining=4)), timeout_seconds=1)
        decision = await gate.admit("u1")
        assert decision.allowed
        assert decision.remaining == 4

    @pytest.mark.asyncio
    async def test_rate_limited_raises_with_details(self):
        """Test quota denials carry remaining and reset time."""
        gate = AdmissionGate(
            FixedAdmission(AdmissionDecision.rate_limited(remaining=0, reset_after=42.0)),
            timeout_seconds=1,
        )
        with pytest.raises(RateLimitedError) as exc_info:
            await gate.admit("u1")

        assert exc_info.value.remaining == 0
        assert exc_info.value.reset_after == 42.0
        assert "Too many requests" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_blocked_raises(self):
        """Test policy denials raise BlockedError."""
        gate = AdmissionGate(FixedAdmission(AdmissionDecision.blocked()), timeout_seconds=1)
        with pytest.raises(BlockedError):
            await gate.admit("u1")

    @pytest.mark.asyncio
    async def test_timeout_fails_closed(self):
        """Test a slow collaborator is treated as Blocked."""
        gate = AdmissionGate(SlowAdmission(), timeout_seconds=0.05)
        decision = await gate.check("u1")
        assert decision.reason is DenialReason.BLOCKED

        with pytest.raises(BlockedError):
            await gate.admit("u1")

    @pytest.mark.asyncio
    async def test_collaborator_error_fails_closed(self):
        """Test an unreachable collaborator is treated as Blocked."""
        gate = AdmissionGate(BrokenAdmission(), timeout_seconds=1)
        with pytest.raises(BlockedError):
            await gate.admit("u1")

    @pytest.mark.asyncio
    async def test_gate_with_token_bucket(self):
        """Test the gate in front of a real bucket."""
        bucket = TokenBucketAdmission(capacity=1, refill_amount=1, refill_interval_seconds=60, clock=FakeClock())
        gate = AdmissionGate(bucket, timeout_seconds=1)

        await gate.admit("u1")
        with pytest.raises(RateLimitedError):
            await gate.admit("u1")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
