"""
Wallet signature verification.

Implements EIP-191 personal_sign recovery: the message is hashed with the
"\\x19Ethereum Signed Message:\\n<len>" prefix, the public key is recovered
from the signature over that hash and the address derived from it.
"""

import logging
import re

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_checksum_address, to_checksum_address

logger = logging.getLogger(__name__)

_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address) -> bool:
    """
    Check an address the way wallets do: 0x plus 40 hex digits, and a
    correct EIP-55 checksum whenever the hex digits mix upper and lower case.
    """
    if not isinstance(address, str) or not _ADDRESS_PATTERN.match(address):
        return False

    digits = address[2:]
    if digits == digits.lower() or digits == digits.upper():
        return True

    return is_checksum_address(address)


class SignatureVerifier:
    """Checks that a message was signed by a given address."""

    def recover_address(self, message: str, signature: str) -> str:
        """
        Recover the checksummed address that signed a message.

        Raises:
            ValueError: If the signature is malformed or unrecoverable
        """
        signable = encode_defunct(text=message)
        return to_checksum_address(Account.recover_message(signable, signature=signature))

    def verify(self, message: str, signature: str, claimed_address: str) -> bool:
        """
        Verify message signature against the claimed address.

        Bad signatures, malformed input and signer mismatches all return
        False so callers cannot tell them apart.

        Args:
            message: Exact text that was signed
            signature: 0x-prefixed hex signature (65 bytes)
            claimed_address: Address expected to have signed

        Returns:
            True only if the recovered signer equals claimed_address
        """
        try:
            if not isinstance(message, str):
                logger.warning(f"Rejecting signature check: message is {type(message).__name__}, not str")
                return False

            if not is_valid_address(claimed_address):
                logger.warning(f"Rejecting signature check: invalid address format {claimed_address!r}")
                return False

            expected = to_checksum_address(claimed_address)
            recovered = self.recover_address(message, signature)

            if recovered != expected:
                logger.warning(f"Signature signer mismatch for {expected}")
                return False

            return True

        except Exception as e:
            logger.warning(f"Signature verification error: {e}")
            return False


def sign_message(message: str, private_key: str) -> str:
    """
    Sign a message with EIP-191 personal_sign.

    Args:
        message: Text to sign
        private_key: Hex private key

    Returns:
        0x-prefixed hex signature
    """
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    signature = signed.signature.hex()
    return signature if signature.startswith("0x") else f"0x{signature}"
