"""
Shared fixtures for Finance Ledger tests.

Everything here is synchronous: stores are seeded through their
constructors so no fixture needs an event loop.
"""

from decimal import Decimal

import pytest

from finance_ledger.admission import AdmissionDecision, AdmissionGate, AdmissionInterface
from finance_ledger.ledger import LedgerMutationEngine
from finance_ledger.models import Account, Identity, User
from finance_ledger.queries import TransactionQueryService
from finance_ledger.services.storage import InMemoryLedgerStorage


class AllowAll(AdmissionInterface):
    """Admission collaborator that admits everything and counts calls."""

    def __init__(self):
        self.calls = []

    async def protect(self, user_key: str, cost: int) -> AdmissionDecision:
        self.calls.append((user_key, cost))
        return AdmissionDecision.allow(remaining=99)


@pytest.fixture
def user():
    return User(external_id="user_alice")


@pytest.fixture
def other_user():
    return User(external_id="user_bob")


@pytest.fixture
def identity(user):
    return Identity.authenticated(user.external_id)


@pytest.fixture
def account(user):
    return Account(user_id=user.id, name="Checking", balance=Decimal("100.00"), is_default=True)


@pytest.fixture
def savings(user):
    return Account(user_id=user.id, name="Savings", balance=Decimal("500.00"))


@pytest.fixture
def foreign_account(other_user):
    return Account(user_id=other_user.id, name="Bob's", balance=Decimal("40.00"))


@pytest.fixture
def storage(user, other_user, account, savings, foreign_account):
    return InMemoryLedgerStorage(
        users=[user, other_user],
        accounts=[account, savings, foreign_account],
    )


@pytest.fixture
def protector():
    return AllowAll()


@pytest.fixture
def gate(protector):
    return AdmissionGate(protector, timeout_seconds=1.0)


@pytest.fixture
def engine(storage, gate):
    return LedgerMutationEngine(storage, gate, cost_per_mutation=1)


@pytest.fixture
def query_service(storage):
    return TransactionQueryService(storage)
