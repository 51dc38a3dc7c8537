"""
Core types and helpers for the HTLC escrow ledger.

An escrow locks an amount of a fungible token for a receiver. It is released
either by revealing the preimage of `secret_hash` (withdraw) or, once the
timelock has passed, returned to the sender (cancel).
"""

import os
import secrets
from enum import IntEnum
from dataclasses import dataclass
from typing import Dict, Any


# =============================================================================
# Constants
# =============================================================================

# Amounts are signed 128-bit on the wire, and must be positive
MAX_AMOUNT = 2**127 - 1

# Timelocks are unsigned 64-bit unix timestamps
MAX_TIMESTAMP = 2**64 - 1

SECRET_BYTES = 32

DEFAULT_LEDGER_ADDRESS = "htlc-escrow-ledger"
DEFAULT_HASH_ALGORITHM = "keccak256"


# =============================================================================
# Errors
# =============================================================================

class HTLCError(IntEnum):
    """Reasons an escrow call is rejected. Codes are stable."""
    ESCROW_NOT_FOUND = 1
    ALREADY_WITHDRAWN = 2
    ALREADY_CANCELLED = 3
    INVALID_SECRET = 4
    TIMELOCK_NOT_EXPIRED = 5
    UNAUTHORIZED_ACCESS = 6
    INSUFFICIENT_BALANCE = 7
    INVALID_TIMELOCK = 8

    @property
    def label(self) -> str:
        """CamelCase name, e.g. AlreadyWithdrawn."""
        return "".join(part.capitalize() for part in self.name.split("_"))


class EscrowError(Exception):
    """A rejected escrow operation. Carries exactly one HTLCError."""

    def __init__(self, error: HTLCError, message: str = ""):
        self.error = error
        super().__init__(message or error.label)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error.label, "code": int(self.error)}


class TransferError(RuntimeError):
    """Value transfer refused by the token backend. Nothing was moved."""


# =============================================================================
# Escrow record
# =============================================================================

@dataclass
class Escrow:
    """Persisted state of one escrow. Keyed by hash(order_id), not stored here."""
    sender: str
    receiver: str
    amount: int
    secret_hash: bytes
    timelock: int           # Unix seconds; cancel allowed at or after
    token_address: str
    order_id: str
    withdrawn: bool = False
    cancelled: bool = False
    created_at: int = 0

    @property
    def is_open(self) -> bool:
        return not self.withdrawn and not self.cancelled

    @property
    def status(self) -> str:
        if self.withdrawn:
            return "withdrawn"
        if self.cancelled:
            return "cancelled"
        return "open"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "receiver": self.receiver,
            "amount": self.amount,
            "secret_hash": self.secret_hash.hex(),
            "timelock": self.timelock,
            "token_address": self.token_address,
            "order_id": self.order_id,
            "withdrawn": self.withdrawn,
            "cancelled": self.cancelled,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Escrow':
        return cls(
            sender=data["sender"],
            receiver=data["receiver"],
            amount=int(data["amount"]),
            secret_hash=bytes.fromhex(data["secret_hash"]),
            timelock=int(data["timelock"]),
            token_address=data["token_address"],
            order_id=data["order_id"],
            withdrawn=bool(data.get("withdrawn", False)),
            cancelled=bool(data.get("cancelled", False)),
            created_at=int(data.get("created_at", 0)),
        )


# =============================================================================
# Configuration
# =============================================================================

def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class LedgerConfig:
    """Escrow ledger configuration."""
    ledger_address: str = DEFAULT_LEDGER_ADDRESS   # Custody identity
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM   # keccak256 | sha256
    store_path: str = ""                           # Empty = in-memory store
    allow_mint: bool = False                       # Dev faucet on the HTTP API

    @classmethod
    def from_env(cls) -> 'LedgerConfig':
        """Read configuration from HTLC_* environment variables."""
        return cls(
            ledger_address=os.environ.get("HTLC_LEDGER_ADDRESS", DEFAULT_LEDGER_ADDRESS),
            hash_algorithm=os.environ.get("HTLC_HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM).lower(),
            store_path=os.path.expanduser(os.environ.get("HTLC_STORE_PATH", "")),
            allow_mint=_env_flag("HTLC_ALLOW_MINT"),
        )

    def build_ledger(self, clock=None, tokens=None, events=None):
        """
        Wire an EscrowLedger with the default backends for this config.

        Any collaborator passed explicitly is used instead of the default.
        """
        from .ledger import EscrowLedger
        from .backends import (
            SystemClock, MemoryRecordStore, JsonFileRecordStore,
            MemoryTokenBank, LogEventSink, get_hasher,
        )

        store = JsonFileRecordStore(self.store_path) if self.store_path else MemoryRecordStore()
        return EscrowLedger(
            store=store,
            tokens=tokens if tokens is not None else MemoryTokenBank(),
            clock=clock if clock is not None else SystemClock(),
            hasher=get_hasher(self.hash_algorithm),
            events=events if events is not None else LogEventSink(),
            ledger_address=self.ledger_address,
        )


# =============================================================================
# Helpers
# =============================================================================

def generate_secret(hasher) -> tuple[str, bytes]:
    """
    Generate a random secret and its hash under `hasher`.

    Returns:
        (secret_hex, secret_hash)
    """
    secret = secrets.token_hex(SECRET_BYTES)
    return secret, hasher.digest(secret.encode("utf-8"))


def parse_hex(value: str) -> bytes:
    """Decode a hex string, with or without 0x prefix."""
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def validate_escrow_args(sender: str, receiver: str, amount: int, secret_hash: bytes,
                         timelock: int, token_address: str, order_id: str) -> None:
    """Reject malformed create arguments before anything is touched."""
    for name, value in (("sender", sender), ("receiver", receiver),
                        ("token_address", token_address), ("order_id", order_id)):
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name} must be a non-empty string")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an integer, got {type(amount).__name__}")
    if not 0 < amount <= MAX_AMOUNT:
        raise ValueError(f"amount out of range: {amount}")
    if not isinstance(secret_hash, (bytes, bytearray)):
        raise ValueError(f"secret_hash must be bytes, got {type(secret_hash).__name__}")
    if isinstance(timelock, bool) or not isinstance(timelock, int):
        raise ValueError(f"timelock must be an integer, got {type(timelock).__name__}")
    if not 0 <= timelock <= MAX_TIMESTAMP:
        raise ValueError(f"timelock out of range: {timelock}")


def short_id(escrow_id: bytes, length: int = 16) -> str:
    """Hex prefix of an identifier for log lines."""
    return escrow_id.hex()[:length]
