"""
Key-value store backends for Handlebook.

The registry and the rate governor only rely on the primitives of
HandleStore. Each primitive is a single atomic operation at the store:
set_if_absent is the only mutual-exclusion mechanism for claims and
increment_with_expiry the only counter primitive for rate limiting.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional, Protocol, Set, Tuple, runtime_checkable

import redis

from .errors import StoreError

logger = logging.getLogger(__name__)


@runtime_checkable
class HandleStore(Protocol):
    """Store primitives consumed by the registry and the rate governor."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set_if_absent(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ...

    def add_to_set(self, key: str, member: str) -> None:
        ...

    def set_members(self, key: str) -> Set[str]:
        ...

    def increment_with_expiry(self, key: str, ttl: int) -> int:
        ...

    def ping(self) -> bool:
        ...


# =====================================================================
# REDIS
# =====================================================================

# INCR and EXPIRE in one round trip; the expiry is only set by the
# increment that creates the key.
_INCREMENT_WITH_EXPIRY = """
    local count = redis.call('INCR', KEYS[1])
    if count == 1 then
        redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
    end
    return count
"""


class RedisStore:
    """Redis-backed store (works with any Redis-protocol server, e.g. Upstash)."""

    def __init__(self, client: redis.Redis):
        """
        Initialize Redis store.

        Args:
            client: Redis client created with decode_responses=True
        """
        self.redis = client
        self._increment_script = self.redis.register_script(_INCREMENT_WITH_EXPIRY)

    @classmethod
    def from_url(cls, redis_url: str, timeout: float = 3.0) -> "RedisStore":
        """Create a store from a redis:// or rediss:// URL with bounded socket timeouts."""
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.redis.get(key)
        except redis.RedisError as e:
            raise StoreError(f"GET {key} failed: {e}") from e

    def set_if_absent(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            # SET NX returns None when the key already exists
            result = self.redis.set(key, value, nx=True, ex=ttl)
        except redis.RedisError as e:
            raise StoreError(f"SET NX {key} failed: {e}") from e
        return bool(result)

    def add_to_set(self, key: str, member: str) -> None:
        try:
            self.redis.sadd(key, member)
        except redis.RedisError as e:
            raise StoreError(f"SADD {key} failed: {e}") from e

    def set_members(self, key: str) -> Set[str]:
        try:
            return set(self.redis.smembers(key))
        except redis.RedisError as e:
            raise StoreError(f"SMEMBERS {key} failed: {e}") from e

    def increment_with_expiry(self, key: str, ttl: int) -> int:
        try:
            return int(self._increment_script(keys=[key], args=[ttl]))
        except redis.RedisError as e:
            raise StoreError(f"INCR {key} failed: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


# =====================================================================
# IN-MEMORY
# =====================================================================

class MemoryStore:
    """
    Process-local store for tests and single-process development.

    A lock serializes every primitive so set_if_absent and
    increment_with_expiry keep their test-and-set semantics across threads.
    Expiry is lazy, evaluated against the injected clock on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}
        self._sets: Dict[str, Set[str]] = {}
        self._counters: Dict[str, Tuple[int, float]] = {}

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._values.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at):
                del self._values[key]
                return None
            return value

    def set_if_absent(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        with self._lock:
            entry = self._values.get(key)
            if entry is not None and not self._expired(entry[1]):
                return False
            expires_at = self._clock() + ttl if ttl else None
            self._values[key] = (value, expires_at)
            return True

    def add_to_set(self, key: str, member: str) -> None:
        with self._lock:
            self._sets.setdefault(key, set()).add(member)

    def set_members(self, key: str) -> Set[str]:
        with self._lock:
            return set(self._sets.get(key, ()))

    def increment_with_expiry(self, key: str, ttl: int) -> int:
        with self._lock:
            entry = self._counters.get(key)
            if entry is None or self._expired(entry[1]):
                self._counters[key] = (1, self._clock() + ttl)
                return 1
            count, expires_at = entry
            self._counters[key] = (count + 1, expires_at)
            return count + 1

    def ping(self) -> bool:
        return True

    def flush(self) -> None:
        """Drop all keys."""
        with self._lock:
            self._values.clear()
            self._sets.clear()
            self._counters.clear()


def create_store(config) -> HandleStore:
    """Build the store backend named in a HandlebookConfig."""
    if config.store == "memory":
        logger.warning("Using in-memory store - claims will not survive a restart")
        return MemoryStore()
    logger.info(f"Connecting to Redis store (timeout={config.store_timeout}s)")
    return RedisStore.from_url(config.redis_url, timeout=config.store_timeout)
