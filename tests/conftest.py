"""
Shared fixtures.

No real API calls in tests: everything runs on the in-memory store.
"""

import random

import pytest

from festival_fund.audit import AuditLogger
from festival_fund.ledger import EventRecorder, Ledger
from festival_fund.numbering import UniqueNumberGenerator
from festival_fund.services.storage import DocumentAuditStorage, InMemoryDocumentStore
from festival_fund.validation import ContributionValidator

from tests.factories import counting_clock


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def numbers() -> UniqueNumberGenerator:
    return UniqueNumberGenerator(clock=counting_clock(), rng=random.Random(7))


@pytest.fixture
def audit_logger(store) -> AuditLogger:
    return AuditLogger(DocumentAuditStorage(store))


@pytest.fixture
def validator() -> ContributionValidator:
    return ContributionValidator(max_amount=10_000_000)


@pytest.fixture
def ledger(store, numbers, validator, audit_logger) -> Ledger:
    return Ledger(
        store,
        account_id="main_account",
        max_attempts=50,
        backoff_max_seconds=0,
        numbers=numbers,
        validator=validator,
        audit_logger=audit_logger,
    )


@pytest.fixture
def recorder(ledger, audit_logger) -> EventRecorder:
    return EventRecorder(ledger, audit_logger=audit_logger)
