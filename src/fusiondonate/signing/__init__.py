"""Wallet signing for client-side order flows."""

from fusiondonate.signing.base import SigningCancelledError, SigningError, WalletSigner
from fusiondonate.signing.local import LocalWalletSigner

__all__ = [
    "WalletSigner",
    "LocalWalletSigner",
    "SigningError",
    "SigningCancelledError",
]
