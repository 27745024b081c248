"""
Per-identity rate governor backed by the shared store.

Fixed window: the counter is created with a TTL on the first attempt and
restarts once it expires. Every attempt counts, including rejected ones.
"""

import logging

from .errors import StoreError
from .store import HandleStore

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY_PREFIX = "ratelimit:"


class RateGovernor:
    """Bounds attempts per caller identity within a time window."""

    def __init__(self, store: HandleStore):
        self.store = store

    def allow(self, identity: str, limit: int, window_seconds: int) -> bool:
        """
        Count an attempt and decide whether it may proceed.

        Args:
            identity: Caller identity, e.g. "203.0.113.7:username-claim"
            limit: Attempts allowed per window
            window_seconds: Window length

        Returns:
            True if the post-increment count is within limit. False when over
            the limit or when the store is unreachable (fail closed).
        """
        key = f"{RATE_LIMIT_KEY_PREFIX}{identity}"

        try:
            count = self.store.increment_with_expiry(key, window_seconds)
        except StoreError as e:
            logger.error(f"Rate limit check failed for {identity}, denying: {e}")
            return False

        if count > limit:
            logger.warning(f"Rate limit exceeded for {identity}: {count}/{limit} in {window_seconds}s")
            return False

        return True
