"""
Shared fixtures for Handlebook tests.

Everything runs against MemoryStore with a manual clock; wallets are
deterministic eth_account keys.
"""

import pytest
from eth_account import Account

from handlebook.claims import ClaimService
from handlebook.lookup import LookupService
from handlebook.rate_limiter import RateGovernor
from handlebook.registry import HandleRegistry
from handlebook.signatures import SignatureVerifier
from handlebook.store import MemoryStore

from .helpers import ALICE_KEY, BOB_KEY, ManualClock


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def registry(store):
    return HandleRegistry(store)


@pytest.fixture
def governor(store):
    return RateGovernor(store)


@pytest.fixture
def verifier():
    return SignatureVerifier()


@pytest.fixture
def claim_service(registry, governor, verifier):
    return ClaimService(registry=registry, governor=governor, verifier=verifier)


@pytest.fixture
def lookup_service(registry):
    return LookupService(registry)


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)
