"""
Client interface for communicating with the Handlebook service.

Wraps the HTTP API and signs claim messages locally so a private key never
leaves the caller.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from eth_account import Account

from .messages import DEFAULT_APP_NAME, claim_message
from .signatures import sign_message

logger = logging.getLogger(__name__)


def build_claim_request(handle: str, private_key: str, app_name: str = DEFAULT_APP_NAME) -> Dict[str, str]:
    """
    Build a signed claim body for a handle.

    Args:
        handle: Handle to claim, with or without '@'
        private_key: Hex private key of the claiming wallet
        app_name: Application name used in the canonical message

    Returns:
        Dict ready to POST to /api/v1/handles/claim
    """
    message = claim_message(handle, app_name)
    return {
        "handle": handle,
        "ownerAddress": Account.from_key(private_key).address,
        "message": message,
        "signature": sign_message(message, private_key),
    }


class HandlebookClient:
    """HTTP client for the Handlebook service."""

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 5.0):
        """
        Initialize Handlebook client.

        Args:
            base_url: URL of the Handlebook service
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout)

    def claim_handle(self, claim: Dict[str, str]) -> httpx.Response:
        """
        Submit a claim.

        The response is returned as-is; its status code carries the outcome
        (409 taken, 401 bad signature, 429 rate limited, 500 internal).
        A timeout means the outcome is unknown: resolve the handle before
        claiming again.

        Raises:
            httpx.TransportError: If the request could not be completed
        """
        return self.client.post(f"{self.base_url}/api/v1/handles/claim", json=claim)

    def resolve_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        """
        Look up a handle.

        Returns:
            {handle, ownerAddress, claimedAt} or None if unclaimed

        Raises:
            httpx.HTTPError: If the request fails
        """
        try:
            response = self.client.get(f"{self.base_url}/api/v1/handles/{handle}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to resolve handle '{handle}': {e}")
            raise

    def check_availability(self, handle: str) -> Dict[str, Any]:
        """Check whether a handle can be claimed."""
        response = self.client.get(f"{self.base_url}/api/v1/handles/{handle}/availability")
        response.raise_for_status()
        return response.json()

    def handles_for_address(self, address: str) -> Dict[str, Any]:
        """List handles claimed by an address."""
        response = self.client.get(f"{self.base_url}/api/v1/addresses/{address}/handles")
        response.raise_for_status()
        return response.json()

    def get_status(self) -> Dict[str, Any]:
        """
        Get current service status.

        Returns:
            Status dictionary with health info
        """
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.json()
        except (httpx.HTTPError, ValueError):
            return {
                "status": "unavailable",
                "error": "Cannot connect to Handlebook service"
            }

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
