"""Wallet signer interface.

The signer is the only component that touches a private key. It receives the
EIP-712 payload produced by order preparation and returns a signature; the
server never sees the key.
"""

from abc import ABC, abstractmethod
from typing import Any


class WalletSigner(ABC):
    """Abstract wallet that can sign EIP-712 typed data."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed address of the signing account."""
        pass

    @abstractmethod
    async def sign_typed_data(self, payload: dict[str, Any]) -> str:
        """Sign a typed data payload.

        Args:
            payload: Dict with domain, types, message and primaryType

        Returns:
            Signature as 0x-prefixed hex

        Raises:
            SigningError: if the payload cannot be signed
            SigningCancelledError: if the wallet owner declined
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address})"


class SigningError(Exception):
    """Exception raised when signing fails."""
    pass


class SigningCancelledError(SigningError):
    """Exception raised when the wallet owner rejects the signature request."""
    pass
