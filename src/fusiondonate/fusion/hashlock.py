"""Secrets and hash locks for cross-chain fills.

Each planned fill gets an independent random secret. The order commits to
the secrets through a hash lock: for one fill the lock is the secret's hash,
for several fills it is the Merkle root of per-slot leaves
``keccak256(uint64 index ++ bytes32 secretHash)`` with the fill count packed
into the top bits. Binding each leaf to its index stops a secret from being
replayed against another slot.
"""

import json
import re
import secrets as _random
from typing import Any

from eth_utils import keccak
from web3 import Web3

SECRET_SIZE = 32

# Top 16 bits of the multi-fill lock carry (number of leaves - 1).
FILL_COUNT_SHIFT = 240
ROOT_MASK = (1 << FILL_COUNT_SHIFT) - 1

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


class InvalidSecretsError(ValueError):
    """Raised when stored secrets are not a list of 0x-prefixed hex strings."""
    pass


def generate_secrets(count: int) -> list[str]:
    """Generate ``count`` cryptographically random 32-byte secrets as 0x-hex."""
    if count < 1:
        raise ValueError(f"secrets count must be at least 1, got {count}")
    return ["0x" + _random.token_bytes(SECRET_SIZE).hex() for _ in range(count)]


def _to_bytes32(value: str) -> bytes:
    raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(raw) != SECRET_SIZE:
        raise ValueError(f"expected 32 bytes, got {len(raw)}")
    return raw


def hash_secret(secret: str) -> str:
    """keccak256 of a 32-byte secret, 0x-hex."""
    return "0x" + keccak(_to_bytes32(secret)).hex()


def fill_leaf(index: int, secret_hash: str) -> str:
    """Commitment of ``secret_hash`` to slot ``index``."""
    return Web3.to_hex(Web3.solidity_keccak(["uint64", "bytes32"], [index, _to_bytes32(secret_hash)]))


def _hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(b"".join(sorted((a, b))))


def merkle_root(leaves: list[str]) -> str:
    """Root of a sorted-pair keccak Merkle tree over bytes32 leaves.

    Leaves are sorted and laid out as a complete binary tree in an array
    (leaf i at position len-1-i), then internal nodes are hashed from the
    bottom up; the layout matches OpenZeppelin's SimpleMerkleTree.
    """
    if not leaves:
        raise ValueError("cannot build a Merkle tree without leaves")
    ordered = sorted(_to_bytes32(leaf) for leaf in leaves)
    tree: list[bytes] = [b""] * (2 * len(ordered) - 1)
    for i, leaf in enumerate(ordered):
        tree[len(tree) - 1 - i] = leaf
    for i in range(len(tree) - 1 - len(ordered), -1, -1):
        tree[i] = _hash_pair(tree[2 * i + 1], tree[2 * i + 2])
    return "0x" + tree[0].hex()


class HashLock:
    """Hash lock value committed to by an order."""

    def __init__(self, value: str):
        self.value = value

    @classmethod
    def for_single_fill(cls, secret: str) -> "HashLock":
        return cls(hash_secret(secret))

    @classmethod
    def for_multiple_fills(cls, leaves: list[str]) -> "HashLock":
        if len(leaves) < 2:
            raise ValueError("multiple fills need at least 2 leaves, use for_single_fill")
        root = int(merkle_root(leaves), 16)
        packed = ((len(leaves) - 1) << FILL_COUNT_SHIFT) | (root & ROOT_MASK)
        return cls("0x" + format(packed, "064x"))

    @classmethod
    def for_secrets(cls, secrets: list[str]) -> tuple["HashLock", list[str]]:
        """Build the lock for ``secrets``. Returns (lock, secret hashes)."""
        secret_hashes = [hash_secret(s) for s in secrets]
        if len(secrets) == 1:
            return cls.for_single_fill(secrets[0]), secret_hashes
        leaves = [fill_leaf(i, h) for i, h in enumerate(secret_hashes)]
        return cls.for_multiple_fills(leaves), secret_hashes

    @property
    def fill_count(self) -> int:
        """Number of fills encoded in a multi-fill lock (1 for single fill locks)."""
        return (int(self.value, 16) >> FILL_COUNT_SHIFT) + 1

    def __eq__(self, other: object) -> bool:
        return isinstance(other, HashLock) and self.value.lower() == other.value.lower()

    def __hash__(self) -> int:
        return hash(self.value.lower())

    def __repr__(self) -> str:
        return f"HashLock({self.value})"


def parse_secrets(raw: Any) -> list[str]:
    """Parse stored secrets into a list of 0x-prefixed hex strings.

    Accepts a JSON string or an already-decoded list.

    Raises:
        InvalidSecretsError: on malformed JSON or any non-hex element
    """
    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidSecretsError(f"Invalid secrets format: {e}") from e
    elif isinstance(raw, list):
        value = raw
    else:
        raise InvalidSecretsError("Invalid secrets format: expected JSON string or array")

    if not isinstance(value, list) or not all(
        isinstance(s, str) and _HEX_RE.match(s) for s in value
    ):
        raise InvalidSecretsError("Invalid secrets format: must be an array of hex strings")
    return value
