"""
Handlebook data models.

Defines the persisted handle record, the public lookup projection, the claim
request schema and the explicit outcome types returned by the registry and
the claim service.
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from .errors import ErrorKind
from .timezone_utils import ensure_utc, format_utc_iso, parse_utc_time_string, utc_now


HANDLE_MARKER = "@"
HANDLE_MIN_LENGTH = 3
HANDLE_MAX_LENGTH = 20

_HANDLE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
_SIGNATURE_PATTERN = re.compile(r"^0x[a-fA-F0-9]+$")


# =====================================================================
# HANDLE NORMALIZATION
# =====================================================================

def strip_marker(raw_handle: str) -> str:
    """Remove one optional leading '@' from a handle."""
    if raw_handle.startswith(HANDLE_MARKER):
        return raw_handle[len(HANDLE_MARKER):]
    return raw_handle


def normalize_handle(raw_handle: str) -> str:
    """
    Canonical form of a handle: marker stripped, lower-cased.

    Claim and lookup both go through this function; two spellings that
    normalize identically are the same handle.
    """
    if not isinstance(raw_handle, str):
        raise TypeError(f"Handle must be a string, got {type(raw_handle).__name__}")
    return strip_marker(raw_handle).lower()


def validate_handle(raw_handle: str) -> str:
    """
    Validate handle format and return it with the marker stripped.

    Rules: 3-20 characters of letters, digits, underscore or hyphen.

    Raises:
        ValueError: If the handle breaks any rule
    """
    handle = strip_marker(raw_handle)

    if len(handle) < HANDLE_MIN_LENGTH:
        raise ValueError(f"Username must be at least {HANDLE_MIN_LENGTH} characters")

    if len(handle) > HANDLE_MAX_LENGTH:
        raise ValueError(f"Username must be at most {HANDLE_MAX_LENGTH} characters")

    if not _HANDLE_PATTERN.match(handle):
        raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")

    return handle


def suggest_alternatives(raw_handle: str) -> List[str]:
    """Three alternative handles to offer when one is taken."""
    handle = normalize_handle(raw_handle)
    return [f"{handle}2", f"{handle}_creator", f"{handle}writes"]


# =====================================================================
# PERSISTED RECORD
# =====================================================================

class HandleRecord(BaseModel):
    """
    Stored value for a claimed handle.

    Serialized with the wire keys walletAddress/message/signature/claimedAt.
    Written once at claim time and never mutated.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    owner_address: str = Field(alias="walletAddress", description="Checksummed owner address")
    claim_message: str = Field(alias="message", description="Exact message the owner signed")
    claim_signature: str = Field(alias="signature", description="0x-prefixed hex signature")
    claimed_at: datetime = Field(default_factory=utc_now, alias="claimedAt")

    @field_validator('claimed_at', mode='before')
    @classmethod
    def parse_claimed_at(cls, v):
        if isinstance(v, str):
            return parse_utc_time_string(v)
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v

    @field_serializer('claimed_at')
    def serialize_claimed_at(self, v: datetime) -> str:
        return format_utc_iso(v)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class PublicHandleView(BaseModel):
    """What lookup exposes: never the signed message or the signature."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    handle: str
    owner_address: str = Field(alias="ownerAddress")
    claimed_at: datetime = Field(alias="claimedAt")

    @field_serializer('claimed_at')
    def serialize_claimed_at(self, v: datetime) -> str:
        return format_utc_iso(v)

    @classmethod
    def from_record(cls, normalized_handle: str, record: HandleRecord) -> "PublicHandleView":
        return cls(
            handle=normalized_handle,
            owner_address=record.owner_address,
            claimed_at=record.claimed_at,
        )


# =====================================================================
# CLAIM REQUEST
# =====================================================================

class ClaimRequest(BaseModel):
    """Body of a handle claim."""
    model_config = ConfigDict(populate_by_name=True)

    handle: str = Field(
        validation_alias=AliasChoices("handle", "username"),
        description="Handle to claim, with or without leading '@'"
    )
    owner_address: str = Field(
        validation_alias=AliasChoices("ownerAddress", "walletAddress", "owner_address"),
        description="Address claiming the handle"
    )
    message: str = Field(description="Message the wallet signed")
    signature: str = Field(description="EIP-191 signature, 0x-prefixed hex")

    @field_validator('handle')
    @classmethod
    def validate_handle_format(cls, v):
        return validate_handle(v)

    @field_validator('owner_address')
    @classmethod
    def validate_address_format(cls, v):
        if not _ADDRESS_PATTERN.match(v):
            raise ValueError("Invalid Ethereum address")
        return v

    @field_validator('signature')
    @classmethod
    def validate_signature_format(cls, v):
        if not _SIGNATURE_PATTERN.match(v):
            raise ValueError("Invalid signature")
        return v

    @property
    def normalized_handle(self) -> str:
        return normalize_handle(self.handle)


# =====================================================================
# OUTCOMES
# =====================================================================

class ClaimStatus(Enum):
    """Result of the registry's atomic write."""
    CREATED = "created"
    ALREADY_CLAIMED = "already_claimed"


class ClaimOutcome(Enum):
    """Terminal states of the claim flow."""
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    INVALID_SIGNATURE = "invalid_signature"
    HANDLE_TAKEN = "handle_taken"
    INTERNAL_ERROR = "internal_error"

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return _OUTCOME_ERROR_KINDS.get(self)


_OUTCOME_ERROR_KINDS = {
    ClaimOutcome.RATE_LIMITED: ErrorKind.RATE_LIMIT_ERROR,
    ClaimOutcome.INVALID_SIGNATURE: ErrorKind.AUTHENTICATION_ERROR,
    ClaimOutcome.HANDLE_TAKEN: ErrorKind.CONFLICT_ERROR,
    ClaimOutcome.INTERNAL_ERROR: ErrorKind.INTERNAL_ERROR,
}


class ClaimResult(BaseModel):
    """Outcome of a claim attempt."""
    outcome: ClaimOutcome
    handle: Optional[str] = Field(default=None, description="Normalized handle on success")
    owner_address: Optional[str] = Field(default=None, description="Checksummed owner on success")

    @property
    def success(self) -> bool:
        return self.outcome is ClaimOutcome.SUCCESS

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.outcome.error_kind


class AvailabilityResult(BaseModel):
    """Whether a handle can still be claimed."""
    handle: str
    available: bool
    suggestions: List[str] = Field(default_factory=list)


class AddressHandles(BaseModel):
    """Handles held by one address, from the reverse index."""
    model_config = ConfigDict(populate_by_name=True)

    owner_address: str = Field(alias="ownerAddress")
    handles: List[str] = Field(default_factory=list)
