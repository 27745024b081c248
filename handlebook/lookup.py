"""
Read side of the registry: resolve handles, check availability, list an
address's handles.
"""

import logging
from typing import Optional

from eth_utils import to_checksum_address

from .models import (
    AddressHandles,
    AvailabilityResult,
    PublicHandleView,
    normalize_handle,
    suggest_alternatives,
    validate_handle,
)
from .registry import HandleRegistry

logger = logging.getLogger(__name__)


class LookupService:
    """Public, read-only queries against the handle registry."""

    def __init__(self, registry: HandleRegistry):
        self.registry = registry

    def resolve(self, raw_handle: str) -> Optional[PublicHandleView]:
        """
        Resolve a handle to its owner.

        Accepts "@Alice", "alice" or "ALICE" alike. The signed message and
        signature are never part of the result.

        Returns:
            PublicHandleView, or None if the handle is unclaimed

        Raises:
            StoreError: If the store cannot be read
        """
        normalized = normalize_handle(raw_handle)
        record = self.registry.lookup(normalized)

        if record is None:
            logger.debug(f"Handle '{normalized}' not found")
            return None

        return PublicHandleView.from_record(normalized, record)

    def check_availability(self, raw_handle: str) -> AvailabilityResult:
        """
        Check whether a handle is free, with suggestions when it is not.

        Raises:
            ValueError: If the handle format is invalid
        """
        normalized = normalize_handle(validate_handle(raw_handle))

        if not self.registry.exists(normalized):
            return AvailabilityResult(handle=normalized, available=True)

        return AvailabilityResult(
            handle=normalized,
            available=False,
            suggestions=suggest_alternatives(normalized)
        )

    def handles_for_address(self, address: str) -> AddressHandles:
        """List the handles an address has claimed."""
        handles = self.registry.handles_for(address)
        return AddressHandles(owner_address=to_checksum_address(address), handles=handles)
