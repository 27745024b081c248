"""
Handlebook

Wallet-signed @handle claims with atomic uniqueness and public lookup.
"""

from .models import (
    HandleRecord,
    PublicHandleView,
    ClaimRequest,
    ClaimResult,
    ClaimOutcome,
    ClaimStatus,
    AvailabilityResult,
    normalize_handle
)
from .errors import ErrorKind, StoreError
from .store import HandleStore, RedisStore, MemoryStore
from .registry import HandleRegistry
from .rate_limiter import RateGovernor
from .signatures import SignatureVerifier
from .claims import ClaimService
from .lookup import LookupService

__all__ = [
    'HandleRecord',
    'PublicHandleView',
    'ClaimRequest',
    'ClaimResult',
    'ClaimOutcome',
    'ClaimStatus',
    'AvailabilityResult',
    'normalize_handle',
    'ErrorKind',
    'StoreError',
    'HandleStore',
    'RedisStore',
    'MemoryStore',
    'HandleRegistry',
    'RateGovernor',
    'SignatureVerifier',
    'ClaimService',
    'LookupService'
]
