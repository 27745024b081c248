"""Test helpers: deterministic wallets, a manual clock and failing stores."""

from eth_account import Account

from handlebook.errors import StoreError
from handlebook.messages import claim_message
from handlebook.models import ClaimRequest
from handlebook.signatures import sign_message
from handlebook.store import MemoryStore


ALICE_KEY = "0x" + "11" * 32
BOB_KEY = "0x" + "22" * 32
CAROL_KEY = "0x" + "33" * 32


class ManualClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenStore:
    """Store whose every primitive fails as if Redis were down."""

    def _fail(self, *args, **kwargs):
        raise StoreError("connection refused")

    get = set_if_absent = add_to_set = set_members = increment_with_expiry = _fail

    def ping(self) -> bool:
        return False


class BrokenReverseIndexStore(MemoryStore):
    """MemoryStore whose set writes fail."""

    def add_to_set(self, key: str, member: str) -> None:
        raise StoreError("SADD timed out")


class BrokenClaimWriteStore(MemoryStore):
    """MemoryStore whose SET NX fails; counters still work."""

    def set_if_absent(self, key: str, value: str, ttl=None) -> bool:
        raise StoreError("SET NX timed out")


def make_claim(handle: str, private_key: str, **overrides) -> ClaimRequest:
    """Signed claim request for handle by the wallet owning private_key."""
    message = claim_message(handle)
    fields = {
        "handle": handle,
        "owner_address": Account.from_key(private_key).address,
        "message": message,
        "signature": sign_message(message, private_key),
    }
    fields.update(overrides)
    return ClaimRequest(**fields)


def break_checksum(address: str) -> str:
    """Swap the case of the first letter in a checksummed address."""
    for i, ch in enumerate(address[2:], start=2):
        if ch.isalpha():
            return address[:i] + ch.swapcase() + address[i + 1:]
    raise AssertionError(f"{address} has no letters to swap")
