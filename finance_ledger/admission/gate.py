"""
Admission Gate

Every mutating ledger operation passes this gate once, before any
ledger state is read. The gate asks an admission collaborator for a
decision and turns denials into typed errors.

DESIGN DECISION: The gate fails closed. A collaborator that is slow,
unreachable or broken produces a Blocked decision, never an Allow.

Quota state lives in the collaborator, not here.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from finance_ledger.config import get_settings
from finance_ledger.errors import BlockedError, RateLimitedError
from finance_ledger.logger import get_logger


logger = get_logger(__name__)


class DenialReason(str, Enum):
    """Why the collaborator refused a request."""
    RATE_LIMITED = "rate_limited"
    BLOCKED = "blocked"


class AdmissionDecision(BaseModel):
    """Outcome of one admission check."""

    allowed: bool
    reason: Optional[DenialReason] = None
    remaining: Optional[int] = Field(
        default=None,
        ge=0,
        description="Tokens left after this request (rate-limit denials)"
    )
    reset_after: Optional[float] = Field(
        default=None,
        ge=0,
        description="Seconds until the quota admits this request again"
    )

    @classmethod
    def allow(cls, remaining: Optional[int] = None) -> "AdmissionDecision":
        return cls(allowed=True, remaining=remaining)

    @classmethod
    def rate_limited(
        cls,
        remaining: int,
        reset_after: float,
    ) -> "AdmissionDecision":
        return cls(
            allowed=False,
            reason=DenialReason.RATE_LIMITED,
            remaining=remaining,
            reset_after=reset_after,
        )

    @classmethod
    def blocked(cls) -> "AdmissionDecision":
        return cls(allowed=False, reason=DenialReason.BLOCKED)

    @property
    def is_rate_limited(self) -> bool:
        return not self.allowed and self.reason is DenialReason.RATE_LIMITED


class AdmissionInterface(ABC):
    """
    Abstract admission collaborator.

    Implementations may be in-process (TokenBucketAdmission) or a
    remote rate-limiting service.
    """

    @abstractmethod
    async def protect(self, user_key: str, cost: int) -> AdmissionDecision:
        """
        Decide whether user_key may spend cost tokens now.

        Args:
            user_key: Stable per-user key (the external identity token)
            cost: Tokens this request consumes

        Returns:
            An allow or deny decision
        """
        pass


class AdmissionGate:
    """
    Per-user throttling checkpoint in front of the mutation engine.
    """

    def __init__(
        self,
        protector: AdmissionInterface,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the gate.

        Args:
            protector: Admission collaborator to consult
            timeout_seconds: Checks slower than this count as Blocked.
                            Defaults to ADMISSION_TIMEOUT_SECONDS.
        """
        self._protector = protector
        if timeout_seconds is None:
            timeout_seconds = get_settings().admission.timeout_seconds
        self._timeout = timeout_seconds

    async def check(self, user_key: str, cost: int = 1) -> AdmissionDecision:
        """
        Ask the collaborator for a decision. Never raises.

        Timeouts and collaborator failures become Blocked decisions.
        """
        try:
            return await asyncio.wait_for(
                self._protector.protect(user_key, cost),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "admission_check_timed_out",
                user_key=user_key,
                timeout_seconds=self._timeout,
            )
        except Exception as e:
            logger.error(
                "admission_check_failed",
                user_key=user_key,
                error=str(e),
            )
        return AdmissionDecision.blocked()

    async def admit(self, user_key: str, cost: int = 1) -> AdmissionDecision:
        """
        Admit a request or raise.

        Returns:
            The allow decision

        Raises:
            RateLimitedError: Quota exhausted (carries remaining/reset_after)
            BlockedError: Any other denial
        """
        decision = await self.check(user_key, cost)

        if decision.allowed:
            return decision

        if decision.is_rate_limited:
            logger.warning(
                "rate_limit_exceeded",
                user_key=user_key,
                remaining=decision.remaining,
                reset_in_seconds=decision.reset_after,
            )
            raise RateLimitedError(
                remaining=decision.remaining,
                reset_after=decision.reset_after,
            )

        logger.warning("request_blocked", user_key=user_key)
        raise BlockedError()
