#!/usr/bin/env python3
"""
Example: HTLC escrow lifecycle

Runs both resolution paths against an in-memory ledger with a manual clock:

1. Alice locks 100 USDC for Bob under H(secret), deadline T+10
2. At T+5 Bob withdraws with the secret (refund not yet possible)
3. Alice locks another 100 USDC, nobody claims
4. At T+11 Alice cancels and is refunded

Usage:
    python htlc_escrow_demo.py [--hash sha256]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from htlc_escrow import (
    EscrowLedger, EscrowError, ManualClock, MemoryRecordStore,
    MemoryTokenBank, LogEventSink, get_hasher, generate_secret,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
log = logging.getLogger(__name__)

TOKEN = "USDC"
T0 = 1_700_000_000


def main():
    parser = argparse.ArgumentParser(description="HTLC escrow demo")
    parser.add_argument("--hash", default="keccak256", help="keccak256 or sha256")
    args = parser.parse_args()

    # =================================================================
    # 1. Wire the ledger
    # =================================================================
    clock = ManualClock(T0)
    tokens = MemoryTokenBank()
    tokens.mint(TOKEN, "alice", 1_000)

    ledger = EscrowLedger(
        store=MemoryRecordStore(),
        tokens=tokens,
        clock=clock,
        hasher=get_hasher(args.hash),
        events=LogEventSink(),
        ledger_address="escrow-ledger",
    )

    # =================================================================
    # 2. Withdraw path
    # =================================================================
    secret, secret_hash = generate_secret(ledger.hasher)
    log.info(f"Secret hash: {secret_hash.hex()[:16]}...")

    escrow_id = ledger.create_escrow(
        "alice", "bob", 100, secret_hash, T0 + 10, TOKEN, "order-1")
    log.info(f"Custody: {ledger.get_contract_balance(TOKEN)} {TOKEN}")

    clock.set(T0 + 5)
    log.info(f"can_cancel at T+5: {ledger.can_cancel(escrow_id)}")
    ledger.withdraw(escrow_id, secret, "bob")
    log.info(f"Bob balance: {tokens.balance(TOKEN, 'bob')} {TOKEN}")

    try:
        ledger.cancel(escrow_id, "alice")
    except EscrowError as e:
        log.info(f"Cancel after withdraw rejected: {e.error.label}")

    # =================================================================
    # 3. Cancel path
    # =================================================================
    clock.set(T0)
    secret2, secret_hash2 = generate_secret(ledger.hasher)
    escrow_id2 = ledger.create_escrow(
        "alice", "bob", 100, secret_hash2, T0 + 10, TOKEN, "order-2")

    clock.set(T0 + 11)
    log.info(f"can_cancel at T+11: {ledger.can_cancel(escrow_id2)}")
    ledger.cancel(escrow_id2, "alice")
    log.info(f"Alice balance: {tokens.balance(TOKEN, 'alice')} {TOKEN}")

    try:
        ledger.withdraw(escrow_id2, secret2, "bob")
    except EscrowError as e:
        log.info(f"Withdraw after cancel rejected: {e.error.label}")

    log.info(f"Custody at end: {ledger.get_contract_balance(TOKEN)} {TOKEN}")


if __name__ == "__main__":
    main()
