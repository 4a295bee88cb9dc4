"""Admission control package."""

from finance_ledger.admission.gate import (
    AdmissionDecision,
    AdmissionGate,
    AdmissionInterface,
    DenialReason,
)
from finance_ledger.admission.token_bucket import TokenBucketAdmission

__all__ = [
    "AdmissionDecision",
    "AdmissionGate",
    "AdmissionInterface",
    "DenialReason",
    "TokenBucketAdmission",
]
