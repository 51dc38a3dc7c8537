"""
HTLC Escrow Ledger.

Keeps escrow records and resolves each one exactly once:

    open --withdraw(secret, receiver)--> withdrawn
    open --cancel(sender), now >= timelock--> cancelled

The ledger itself holds escrowed value (custody) from creation until the
single resolution moves it out. Every call runs under one lock, so the
"not resolved yet, mark resolved" step can never interleave with another
resolution of the same escrow.

Resolution order is fixed: the flag is persisted BEFORE the outgoing
transfer. If the transfer then fails the escrow stays resolved and the funds
stay in custody; it can never be paid twice.
"""

import logging
import threading
from typing import Optional

from .core import (
    Escrow, EscrowError, HTLCError,
    validate_escrow_args, short_id,
)
from .backends.clock import Clock
from .backends.hashing import Hasher
from .backends.store import RecordStore
from .backends.token import ValueTransfer
from .backends.events import EventSink, EV_CREATED, EV_WITHDRAWN, EV_CANCELLED

log = logging.getLogger(__name__)


class EscrowLedger:
    """
    Escrow state machine over injected collaborators.

    Args:
        store: Record store keyed by identifier bytes
        tokens: Value transfer backend (balances + atomic transfer)
        clock: Source of the current ledger time
        hasher: Hash used for identifiers and secret commitments
        events: Sink for created/withdrawn/cancelled notifications
        ledger_address: Identity that holds escrowed funds
    """

    def __init__(self, store: RecordStore, tokens: ValueTransfer, clock: Clock,
                 hasher: Hasher, events: EventSink, ledger_address: str):
        self.store = store
        self.tokens = tokens
        self.clock = clock
        self.hasher = hasher
        self.events = events
        self.ledger_address = ledger_address
        self._lock = threading.RLock()

    # =========================================================================
    # Mutating operations
    # =========================================================================

    def create_escrow(self, sender: str, receiver: str, amount: int,
                      secret_hash: bytes, timelock: int, token_address: str,
                      order_id: str) -> bytes:
        """
        Lock `amount` of `token_address` from sender for receiver.

        Args:
            sender: Identity funding the escrow; the only one who can cancel
            receiver: Identity that can withdraw with the secret
            amount: Units to lock (> 0)
            secret_hash: H(secret), fixed for the life of the escrow
            timelock: Unix seconds; must be strictly in the future
            token_address: Asset being escrowed
            order_id: External id; the escrow identifier is H(order_id)

        Returns:
            Escrow identifier (raw hash bytes)

        Raises:
            EscrowError: INVALID_TIMELOCK, INSUFFICIENT_BALANCE
            ValueError: malformed argument (empty identity, bad amount,
                non-bytes secret_hash, timelock outside u64)
        """
        validate_escrow_args(sender, receiver, amount, secret_hash,
                             timelock, token_address, order_id)
        secret_hash = bytes(secret_hash)

        with self._lock:
            now = self.clock.now()
            if timelock <= now:
                raise self._reject(HTLCError.INVALID_TIMELOCK,
                                   f"timelock {timelock} <= now {now}")

            escrow_id = self.hasher.digest_text(order_id)

            sender_balance = self.tokens.balance(token_address, sender)
            if sender_balance < amount:
                raise self._reject(HTLCError.INSUFFICIENT_BALANCE,
                                   f"{sender} has {sender_balance} < {amount}")

            # No duplicate check: a reused order_id overwrites the old record
            if self.store.get(escrow_id) is not None:
                log.warning(f"Escrow {short_id(escrow_id)} already exists "
                            f"(order_id={order_id}), overwriting")

            self.tokens.transfer(token_address, sender, self.ledger_address, amount)

            escrow = Escrow(
                sender=sender,
                receiver=receiver,
                amount=amount,
                secret_hash=secret_hash,
                timelock=timelock,
                token_address=token_address,
                order_id=order_id,
                withdrawn=False,
                cancelled=False,
                created_at=now,
            )
            self.store.set(escrow_id, escrow)

        log.info(f"Escrow created: id={short_id(escrow_id)}..., sender={sender}, "
                 f"receiver={receiver}, amount={amount}, timelock={timelock}")
        self._emit(EV_CREATED, {
            "ID": escrow_id.hex(),
            "Sender": sender,
            "Receiver": receiver,
            "Amount": amount,
        })
        return escrow_id

    def withdraw(self, escrow_id: bytes, secret: str, receiver: str):
        """
        Release escrowed funds to the receiver by revealing the secret.

        Checks, in order: exists, not withdrawn, not cancelled, secret
        matches, caller is the receiver. Allowed before and after timelock.

        Raises:
            EscrowError: ESCROW_NOT_FOUND, ALREADY_WITHDRAWN,
                ALREADY_CANCELLED, INVALID_SECRET, UNAUTHORIZED_ACCESS
        """
        with self._lock:
            escrow = self._load_open(escrow_id)

            if self.hasher.digest_text(secret) != escrow.secret_hash:
                raise self._reject(HTLCError.INVALID_SECRET, short_id(escrow_id))

            if receiver != escrow.receiver:
                raise self._reject(HTLCError.UNAUTHORIZED_ACCESS,
                                   f"{receiver} is not the receiver")

            escrow.withdrawn = True
            self.store.set(escrow_id, escrow)
            self._pay_out(escrow_id, escrow, receiver)

        log.info(f"Escrow withdrawn: id={short_id(escrow_id)}..., "
                 f"receiver={receiver}, amount={escrow.amount}")
        self._emit(EV_WITHDRAWN, {
            "ID": escrow_id.hex(),
            "Receiver": receiver,
            "Amount": escrow.amount,
        })

    def cancel(self, escrow_id: bytes, sender: str):
        """
        Refund the sender once the timelock has been reached.

        Checks, in order: exists, not withdrawn, not cancelled,
        now >= timelock, caller is the sender.

        Raises:
            EscrowError: ESCROW_NOT_FOUND, ALREADY_WITHDRAWN,
                ALREADY_CANCELLED, TIMELOCK_NOT_EXPIRED, UNAUTHORIZED_ACCESS
        """
        with self._lock:
            escrow = self._load_open(escrow_id)

            now = self.clock.now()
            if now < escrow.timelock:
                raise self._reject(HTLCError.TIMELOCK_NOT_EXPIRED,
                                   f"now {now} < timelock {escrow.timelock}")

            if sender != escrow.sender:
                raise self._reject(HTLCError.UNAUTHORIZED_ACCESS,
                                   f"{sender} is not the sender")

            escrow.cancelled = True
            self.store.set(escrow_id, escrow)
            self._pay_out(escrow_id, escrow, sender)

        log.info(f"Escrow cancelled: id={short_id(escrow_id)}..., "
                 f"sender={sender}, amount={escrow.amount}")
        self._emit(EV_CANCELLED, {
            "ID": escrow_id.hex(),
            "Sender": sender,
            "Amount": escrow.amount,
        })

    # =========================================================================
    # Read-only queries
    # =========================================================================

    def get_escrow(self, escrow_id: bytes) -> Optional[Escrow]:
        with self._lock:
            return self.store.get(escrow_id)

    def verify_secret(self, escrow_id: bytes, secret: str) -> bool:
        """True if H(secret) matches the escrow's commitment. Ignores state."""
        escrow = self.get_escrow(escrow_id)
        if escrow is None:
            return False
        return self.hasher.digest_text(secret) == escrow.secret_hash

    def can_cancel(self, escrow_id: bytes) -> bool:
        """True if the escrow exists, is unresolved and its timelock is reached."""
        with self._lock:
            escrow = self.store.get(escrow_id)
            if escrow is None:
                return False
            return escrow.is_open and self.clock.now() >= escrow.timelock

    def generate_secret_hash(self, secret: str) -> bytes:
        return self.hasher.digest_text(secret)

    def get_contract_balance(self, token_address: str) -> int:
        """Units of `token_address` currently held in custody."""
        return self.tokens.balance(token_address, self.ledger_address)

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_open(self, escrow_id: bytes) -> Escrow:
        escrow = self.store.get(escrow_id)
        if escrow is None:
            raise self._reject(HTLCError.ESCROW_NOT_FOUND, short_id(escrow_id))
        if escrow.withdrawn:
            raise self._reject(HTLCError.ALREADY_WITHDRAWN, short_id(escrow_id))
        if escrow.cancelled:
            raise self._reject(HTLCError.ALREADY_CANCELLED, short_id(escrow_id))
        return escrow

    def _pay_out(self, escrow_id: bytes, escrow: Escrow, to: str):
        try:
            self.tokens.transfer(escrow.token_address, self.ledger_address, to, escrow.amount)
        except Exception as e:
            log.error(f"Transfer failed after escrow {short_id(escrow_id)} was resolved "
                      f"({escrow.status}); {escrow.amount} {escrow.token_address} "
                      f"remain in custody: {e}")
            raise

    def _reject(self, error: HTLCError, detail: str = "") -> EscrowError:
        log.warning(f"Escrow call rejected: {error.label} ({detail})")
        return EscrowError(error, f"{error.label}: {detail}" if detail else "")

    def _emit(self, name: str, payload: dict):
        try:
            self.events.emit(name, payload)
        except Exception as e:
            log.error(f"Failed to emit {name}: {e}")
