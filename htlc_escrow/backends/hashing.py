"""
Hash oracles for escrow identifiers and secret commitments.

The same hasher is used for both: identifier = H(order_id) and
secret_hash = H(secret). Text is hashed as its UTF-8 bytes.

- keccak256: EVM/Soroban style commitments (default)
- sha256: Bitcoin-script compatible hashlocks (BIP-199)
"""

import hashlib

from web3 import Web3


class Hasher:
    """Fixed one-way hash producing 32-byte digests."""

    name = ""

    def digest(self, data: bytes) -> bytes:
        raise NotImplementedError

    def digest_text(self, text: str) -> bytes:
        return self.digest(text.encode("utf-8"))


class Keccak256Hasher(Hasher):
    name = "keccak256"

    def digest(self, data: bytes) -> bytes:
        return bytes(Web3.keccak(primitive=bytes(data)))


class Sha256Hasher(Hasher):
    name = "sha256"

    def digest(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()


HASHERS = {
    Keccak256Hasher.name: Keccak256Hasher,
    Sha256Hasher.name: Sha256Hasher,
}


def get_hasher(name: str) -> Hasher:
    """Look up a hasher by algorithm name."""
    try:
        return HASHERS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unsupported hash algorithm: {name} (expected one of {sorted(HASHERS)})")
