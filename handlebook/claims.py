"""
Claim flow: rate check, canonical message, signature check, registry write.

Every path ends in exactly one ClaimOutcome. Only INTERNAL_ERROR is worth
retrying; the other outcomes are final for the same inputs.
"""

import logging

from eth_utils import to_checksum_address

from .errors import StoreError
from .messages import DEFAULT_APP_NAME, claim_message
from .models import ClaimOutcome, ClaimRequest, ClaimResult, ClaimStatus, HandleRecord
from .rate_limiter import RateGovernor
from .registry import HandleRegistry
from .signatures import SignatureVerifier
from .timezone_utils import utc_now

logger = logging.getLogger(__name__)

CLAIM_RATE_ACTION = "username-claim"


class ClaimService:
    """Runs a claim request through governor, verifier and registry."""

    def __init__(
        self,
        registry: HandleRegistry,
        governor: RateGovernor,
        verifier: SignatureVerifier,
        app_name: str = DEFAULT_APP_NAME,
        rate_limit: int = 20,
        rate_window: int = 60
    ):
        self.registry = registry
        self.governor = governor
        self.verifier = verifier
        self.app_name = app_name
        self.rate_limit = rate_limit
        self.rate_window = rate_window

    def admit(self, caller_identity: str) -> bool:
        """Count one claim attempt for caller_identity against the rate window."""
        rate_identity = f"{caller_identity}:{CLAIM_RATE_ACTION}"
        return self.governor.allow(rate_identity, self.rate_limit, self.rate_window)

    def claim(self, request: ClaimRequest, caller_identity: str, admitted: bool = False) -> ClaimResult:
        """
        Claim a handle for the request's owner address.

        Args:
            request: Validated claim request
            caller_identity: Who is calling (client IP), used for rate limiting
            admitted: True when admit() already counted this attempt

        Returns:
            ClaimResult with the terminal outcome
        """
        try:
            return self._claim(request, caller_identity, admitted)
        except StoreError as e:
            logger.error(
                f"Store failure claiming '{request.handle}' for {request.owner_address}: {e}",
                exc_info=True
            )
            return ClaimResult(outcome=ClaimOutcome.INTERNAL_ERROR)
        except Exception as e:
            logger.error(
                f"Unexpected error claiming '{request.handle}' for {request.owner_address}: {e}",
                exc_info=True
            )
            return ClaimResult(outcome=ClaimOutcome.INTERNAL_ERROR)

    def _claim(self, request: ClaimRequest, caller_identity: str, admitted: bool) -> ClaimResult:
        if not admitted and not self.admit(caller_identity):
            return ClaimResult(outcome=ClaimOutcome.RATE_LIMITED)

        # The signature is always checked against the re-derived message, so a
        # signature for another action cannot be passed off as a claim.
        expected_message = claim_message(request.handle, self.app_name)
        if request.message != expected_message:
            logger.warning(
                f"Claim message mismatch for '{request.handle}' from {caller_identity}"
            )
            return ClaimResult(outcome=ClaimOutcome.INVALID_SIGNATURE)

        if not self.verifier.verify(expected_message, request.signature, request.owner_address):
            logger.warning(
                f"Invalid claim signature for '{request.handle}' "
                f"(address {request.owner_address}, caller {caller_identity})"
            )
            return ClaimResult(outcome=ClaimOutcome.INVALID_SIGNATURE)

        normalized = request.normalized_handle
        owner = to_checksum_address(request.owner_address)
        record = HandleRecord(
            owner_address=owner,
            claim_message=expected_message,
            claim_signature=request.signature,
            claimed_at=utc_now()
        )

        status = self.registry.claim(normalized, record)

        if status is ClaimStatus.ALREADY_CLAIMED:
            logger.warning(f"Claim rejected: '{normalized}' is taken (requested by {owner})")
            return ClaimResult(outcome=ClaimOutcome.HANDLE_TAKEN)

        return ClaimResult(outcome=ClaimOutcome.SUCCESS, handle=normalized, owner_address=owner)
