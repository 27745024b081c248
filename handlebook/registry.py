"""
Handle registry: the only writer of handle records and the reverse index.

A claim is one atomic set-if-absent on username:{handle}. Concurrent claims of
the same normalized handle yield exactly one CREATED; everyone else gets
ALREADY_CLAIMED. Records are never updated or deleted here.
"""

import logging
from typing import List, Optional

from eth_utils import to_checksum_address
from pydantic import ValidationError

from .errors import StoreError
from .models import ClaimStatus, HandleRecord
from .store import HandleStore

logger = logging.getLogger(__name__)


def handle_key(normalized_handle: str) -> str:
    return f"username:{normalized_handle}"


def reverse_index_key(address: str) -> str:
    return f"address:{to_checksum_address(address)}:usernames"


class HandleRegistry:
    """Claims, looks up and lists handles in the shared store."""

    def __init__(self, store: HandleStore):
        self.store = store

    def claim(self, normalized_handle: str, record: HandleRecord) -> ClaimStatus:
        """
        Atomically claim a handle for record.owner_address.

        The reverse index is written after a successful claim. A failure there
        is logged and the claim still stands.

        Args:
            normalized_handle: Handle in canonical form
            record: Record to store

        Returns:
            ClaimStatus.CREATED or ClaimStatus.ALREADY_CLAIMED

        Raises:
            StoreError: If the claim write itself fails
            ValueError: If record.owner_address is not an address; nothing is written
        """
        index_key = reverse_index_key(record.owner_address)
        created = self.store.set_if_absent(handle_key(normalized_handle), record.to_json())

        if not created:
            logger.info(f"Handle '{normalized_handle}' already claimed")
            return ClaimStatus.ALREADY_CLAIMED

        logger.info(f"Handle '{normalized_handle}' claimed by {record.owner_address}")

        try:
            self.store.add_to_set(index_key, normalized_handle)
        except StoreError as e:
            logger.error(
                f"Reverse index update failed for '{normalized_handle}' -> {record.owner_address}: {e}",
                exc_info=True
            )

        return ClaimStatus.CREATED

    def lookup(self, normalized_handle: str) -> Optional[HandleRecord]:
        """
        Fetch the record for a handle.

        Returns:
            HandleRecord, or None if the handle is unclaimed

        Raises:
            StoreError: If the store fails or holds an unreadable record
        """
        raw = self.store.get(handle_key(normalized_handle))
        if raw is None:
            return None

        try:
            return HandleRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt record stored for handle '{normalized_handle}': {e}")
            raise StoreError(f"Unreadable record for handle '{normalized_handle}'") from e

    def exists(self, normalized_handle: str) -> bool:
        """Check whether a handle has been claimed."""
        return self.store.get(handle_key(normalized_handle)) is not None

    def handles_for(self, address: str) -> List[str]:
        """Handles owned by an address, sorted."""
        return sorted(self.store.set_members(reverse_index_key(address)))
