"""
Collaborators of the escrow ledger.

Each one is injected into EscrowLedger at construction:
- clock: current ledger time
- hashing: one-way hash for identifiers and secret commitments
- store: durable escrow records
- token: value transfer between identities
- events: best-effort notifications
"""

from .clock import Clock, SystemClock, ManualClock
from .hashing import Hasher, Keccak256Hasher, Sha256Hasher, get_hasher, HASHERS
from .store import RecordStore, MemoryRecordStore, JsonFileRecordStore
from .token import ValueTransfer, MemoryTokenBank
from .events import (
    EventSink, LogEventSink, RecordingEventSink,
    EV_CREATED, EV_WITHDRAWN, EV_CANCELLED,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "ManualClock",
    # Hashing
    "Hasher",
    "Keccak256Hasher",
    "Sha256Hasher",
    "get_hasher",
    "HASHERS",
    # Store
    "RecordStore",
    "MemoryRecordStore",
    "JsonFileRecordStore",
    # Value transfer
    "ValueTransfer",
    "MemoryTokenBank",
    # Events
    "EventSink",
    "LogEventSink",
    "RecordingEventSink",
    "EV_CREATED",
    "EV_WITHDRAWN",
    "EV_CANCELLED",
]
