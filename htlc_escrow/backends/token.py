"""
Value transfer backend: fungible token balances per identity.

Transfers are all-or-nothing. A refused transfer raises TransferError and
leaves every balance untouched.
"""

import logging
import threading
from typing import Dict, Tuple

from ..core import TransferError

log = logging.getLogger(__name__)


class ValueTransfer:
    """Moves token amounts between identities."""

    def balance(self, token: str, identity: str) -> int:
        raise NotImplementedError

    def transfer(self, token: str, sender: str, receiver: str, amount: int):
        raise NotImplementedError


class MemoryTokenBank(ValueTransfer):
    """Multi-token in-memory balance sheet."""

    def __init__(self):
        self._balances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def balance(self, token: str, identity: str) -> int:
        with self._lock:
            return self._balances.get((token, identity), 0)

    def mint(self, token: str, identity: str, amount: int) -> int:
        """Credit new units to an identity. Returns the new balance."""
        if amount <= 0:
            raise ValueError(f"mint amount must be positive, got {amount}")
        with self._lock:
            key = (token, identity)
            self._balances[key] = self._balances.get(key, 0) + amount
            new_balance = self._balances[key]
        log.info(f"Minted {amount} {token} to {identity}")
        return new_balance

    def transfer(self, token: str, sender: str, receiver: str, amount: int):
        if amount <= 0:
            raise TransferError(f"transfer amount must be positive, got {amount}")
        with self._lock:
            src = (token, sender)
            available = self._balances.get(src, 0)
            if available < amount:
                raise TransferError(
                    f"insufficient {token} balance for {sender}: {available} < {amount}"
                )
            dst = (token, receiver)
            self._balances[src] = available - amount
            self._balances[dst] = self._balances.get(dst, 0) + amount
        log.debug(f"Transfer {amount} {token}: {sender} -> {receiver}")
