"""
Event sinks for off-chain observers.

Events are notifications only; the ledger never depends on delivery.
"""

import logging
from typing import Any, Dict, List, Tuple

log = logging.getLogger(__name__)

EV_CREATED = "escrow_created"
EV_WITHDRAWN = "escrow_withdrawn"
EV_CANCELLED = "escrow_cancelled"

_TITLES = {
    EV_CREATED: "HTLC Escrow Created",
    EV_WITHDRAWN: "HTLC Withdrawal",
    EV_CANCELLED: "HTLC Cancellation",
}


class EventSink:
    def emit(self, name: str, payload: Dict[str, Any]):
        raise NotImplementedError


class LogEventSink(EventSink):
    """Write each event as a log line."""

    def __init__(self, logger: logging.Logger = None):
        self.log = logger or log

    def emit(self, name: str, payload: Dict[str, Any]):
        fields = ", ".join(f"{k}={v}" for k, v in payload.items())
        self.log.info(f"{_TITLES.get(name, name)}: {fields}")


class RecordingEventSink(EventSink):
    """Keep every event in memory, in order."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, name: str, payload: Dict[str, Any]):
        self.events.append((name, dict(payload)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]
