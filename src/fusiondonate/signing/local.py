"""Local wallet signer.

Signs with an in-memory private key. Suitable for:
- Development/testing
- Scripted donations from a hot wallet

WARNING: The private key is held in memory for the signer's lifetime.
"""

import logging
from typing import Any

from eth_account import Account

from fusiondonate.signing.base import SigningError, WalletSigner

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Any:
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return value


def _coerce_struct(types: dict[str, list[dict[str, str]]], type_name: str, data: dict) -> dict:
    """Parse numeric fields sent as strings back into ints.

    Big integers travel as decimal strings on the wire, eth-account expects
    Python ints for uint/int members.
    """
    fields = {field["name"]: field["type"] for field in types.get(type_name, [])}
    coerced = {}
    for name, value in data.items():
        field_type = fields.get(name, "")
        if field_type.startswith(("uint", "int")) and not field_type.endswith("]"):
            coerced[name] = _to_int(value)
        elif field_type in types and isinstance(value, dict):
            coerced[name] = _coerce_struct(types, field_type, value)
        else:
            coerced[name] = value
    return coerced


class LocalWalletSigner(WalletSigner):
    """EIP-712 signer backed by eth-account."""

    def __init__(self, private_key: str):
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise SigningError(f"Invalid private key: {e}") from e

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, payload: dict[str, Any]) -> str:
        try:
            types = dict(payload["types"])
            primary_type = payload["primaryType"]
            domain = payload["domain"]
            message = payload["message"]
        except KeyError as e:
            raise SigningError(f"Typed data is missing {e}") from e

        domain_data = dict(domain)
        if "chainId" in domain_data:
            domain_data["chainId"] = _to_int(domain_data["chainId"])
        types.pop("EIP712Domain", None)
        if primary_type not in types:
            raise SigningError(f"Primary type {primary_type} not declared in types")

        try:
            signed = self._account.sign_typed_data(
                domain_data=domain_data,
                message_types=types,
                message_data=_coerce_struct(types, primary_type, message),
            )
        except Exception as e:
            logger.error(f"Local typed data signing failed: {e}")
            raise SigningError(str(e)) from e

        return "0x" + bytes(signed.signature).hex()
