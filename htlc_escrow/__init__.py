"""
htlc_escrow - Hashed Timelock Contract escrow ledger

A sender locks tokens for a receiver under H(secret) and a deadline.
The receiver withdraws by revealing the secret; after the deadline the
sender can cancel and get a refund. Exactly one of the two ever succeeds.

Usage:
    from htlc_escrow import LedgerConfig, MemoryTokenBank, generate_secret

    tokens = MemoryTokenBank()
    tokens.mint("USDC", "alice", 1_000)
    ledger = LedgerConfig().build_ledger(tokens=tokens)

    secret, secret_hash = generate_secret(ledger.hasher)
    escrow_id = ledger.create_escrow(
        "alice", "bob", 100, secret_hash, int(time.time()) + 3600, "USDC", "order-42")

    ledger.withdraw(escrow_id, secret, "bob")     # bob reveals the secret
    # or, after the deadline:
    ledger.cancel(escrow_id, "alice")             # alice gets a refund
"""

from .core import (
    Escrow,
    HTLCError,
    EscrowError,
    TransferError,
    LedgerConfig,
    generate_secret,
    parse_hex,
    MAX_AMOUNT,
    MAX_TIMESTAMP,
)

from .ledger import EscrowLedger

from .backends import (
    SystemClock,
    ManualClock,
    Keccak256Hasher,
    Sha256Hasher,
    get_hasher,
    MemoryRecordStore,
    JsonFileRecordStore,
    MemoryTokenBank,
    LogEventSink,
    RecordingEventSink,
)

__version__ = "0.1.0"
__all__ = [
    # Core types
    "Escrow",
    "HTLCError",
    "EscrowError",
    "TransferError",
    "LedgerConfig",
    # Utilities
    "generate_secret",
    "parse_hex",
    "MAX_AMOUNT",
    "MAX_TIMESTAMP",
    # Ledger
    "EscrowLedger",
    # Backends
    "SystemClock",
    "ManualClock",
    "Keccak256Hasher",
    "Sha256Hasher",
    "get_hasher",
    "MemoryRecordStore",
    "JsonFileRecordStore",
    "MemoryTokenBank",
    "LogEventSink",
    "RecordingEventSink",
]
