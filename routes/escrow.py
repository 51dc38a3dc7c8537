"""
HTLC escrow endpoints.

Thin HTTP layer over EscrowLedger. Identifiers and hashes are hex strings
(0x prefix optional on input, plain lowercase hex on output).
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from htlc_escrow import (
    EscrowLedger, LedgerConfig, EscrowError, HTLCError, TransferError,
    generate_secret, parse_hex, __version__,
)

log = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Ledger wiring (set by server.py at startup)
# ---------------------------------------------------------------------------

_ledger: Optional[EscrowLedger] = None
_config: LedgerConfig = LedgerConfig()


def configure(ledger: EscrowLedger, config: LedgerConfig):
    """Attach the ledger served by these routes. Called once by server.py."""
    global _ledger, _config
    _ledger = ledger
    _config = config


def get_ledger() -> EscrowLedger:
    if _ledger is None:
        raise HTTPException(503, "Escrow ledger not configured")
    return _ledger


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class EscrowCreateRequest(BaseModel):
    sender: str = Field(..., min_length=1)
    receiver: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    secret_hash: str = Field(..., description="hex, H(secret)")
    timelock: int = Field(..., ge=0, description="unix seconds")
    token_address: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)


class EscrowCreateResponse(BaseModel):
    escrow_id: str
    order_id: str
    timelock: int


class EscrowResponse(BaseModel):
    escrow_id: str
    sender: str
    receiver: str
    amount: int
    secret_hash: str
    timelock: int
    token_address: str
    order_id: str
    withdrawn: bool
    cancelled: bool
    created_at: int
    status: str


class WithdrawRequest(BaseModel):
    secret: str
    receiver: str


class CancelRequest(BaseModel):
    sender: str


class SecretRequest(BaseModel):
    secret: str


class MintRequest(BaseModel):
    token_address: str = Field(..., min_length=1)
    identity: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR = {
    HTLCError.ESCROW_NOT_FOUND: 404,
    HTLCError.UNAUTHORIZED_ACCESS: 403,
    HTLCError.ALREADY_WITHDRAWN: 409,
    HTLCError.ALREADY_CANCELLED: 409,
}


def escrow_http_error(e: EscrowError) -> HTTPException:
    return HTTPException(_STATUS_BY_ERROR.get(e.error, 400), e.to_dict())


def _decode_hex(value: str, what: str) -> bytes:
    try:
        return parse_hex(value)
    except ValueError:
        raise HTTPException(400, f"Invalid {what} hex")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/api/status")
def get_status():
    """Health check."""
    ledger = get_ledger()
    return {
        "name": "htlc-escrow",
        "version": __version__,
        "ledger_address": ledger.ledger_address,
        "hash_algorithm": ledger.hasher.name,
        "escrows": len(ledger.store),
    }


@router.post("/api/escrow", response_model=EscrowCreateResponse)
def create_escrow(req: EscrowCreateRequest):
    """Lock funds under a hashlock and timelock."""
    ledger = get_ledger()
    secret_hash = _decode_hex(req.secret_hash, "secret_hash")
    try:
        escrow_id = ledger.create_escrow(
            req.sender, req.receiver, req.amount, secret_hash,
            req.timelock, req.token_address, req.order_id,
        )
    except EscrowError as e:
        raise escrow_http_error(e)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except TransferError as e:
        raise HTTPException(502, f"Transfer failed: {e}")

    return EscrowCreateResponse(
        escrow_id=escrow_id.hex(),
        order_id=req.order_id,
        timelock=req.timelock,
    )


@router.get("/api/escrow/{escrow_id}", response_model=EscrowResponse)
def get_escrow(escrow_id: str):
    """Escrow record, resolved or not."""
    key = _decode_hex(escrow_id, "escrow_id")
    escrow = get_ledger().get_escrow(key)
    if escrow is None:
        raise escrow_http_error(EscrowError(HTLCError.ESCROW_NOT_FOUND))
    return EscrowResponse(escrow_id=key.hex(), status=escrow.status, **escrow.to_dict())


@router.post("/api/escrow/{escrow_id}/withdraw")
def withdraw(escrow_id: str, req: WithdrawRequest):
    """Receiver claims with the secret."""
    key = _decode_hex(escrow_id, "escrow_id")
    try:
        get_ledger().withdraw(key, req.secret, req.receiver)
    except EscrowError as e:
        raise escrow_http_error(e)
    except TransferError as e:
        raise HTTPException(502, f"Transfer failed: {e}")
    return {"success": True, "escrow_id": key.hex(), "status": "withdrawn"}


@router.post("/api/escrow/{escrow_id}/cancel")
def cancel(escrow_id: str, req: CancelRequest):
    """Sender reclaims after the timelock."""
    key = _decode_hex(escrow_id, "escrow_id")
    try:
        get_ledger().cancel(key, req.sender)
    except EscrowError as e:
        raise escrow_http_error(e)
    except TransferError as e:
        raise HTTPException(502, f"Transfer failed: {e}")
    return {"success": True, "escrow_id": key.hex(), "status": "cancelled"}


@router.post("/api/escrow/{escrow_id}/verify")
def verify_secret(escrow_id: str, req: SecretRequest):
    key = _decode_hex(escrow_id, "escrow_id")
    return {"valid": get_ledger().verify_secret(key, req.secret)}


@router.get("/api/escrow/{escrow_id}/can-cancel")
def can_cancel(escrow_id: str):
    key = _decode_hex(escrow_id, "escrow_id")
    return {"can_cancel": get_ledger().can_cancel(key)}


@router.post("/api/secret-hash")
def generate_secret_hash(req: SecretRequest):
    ledger = get_ledger()
    return {
        "secret_hash": ledger.generate_secret_hash(req.secret).hex(),
        "algorithm": ledger.hasher.name,
    }


@router.get("/api/secret/new")
def new_secret():
    """Fresh random secret and its hash. Keep the secret private."""
    ledger = get_ledger()
    secret, secret_hash = generate_secret(ledger.hasher)
    return {"secret": secret, "secret_hash": secret_hash.hex(), "algorithm": ledger.hasher.name}


@router.get("/api/balance/{token_address}")
def get_contract_balance(token_address: str):
    """Amount of a token held in custody by the ledger."""
    ledger = get_ledger()
    return {
        "token_address": token_address,
        "holder": ledger.ledger_address,
        "balance": ledger.get_contract_balance(token_address),
    }


@router.get("/api/balance/{token_address}/{identity}")
def get_balance(token_address: str, identity: str):
    ledger = get_ledger()
    return {
        "token_address": token_address,
        "holder": identity,
        "balance": ledger.tokens.balance(token_address, identity),
    }


@router.post("/api/dev/mint")
def mint(req: MintRequest):
    """Credit test funds. Disabled unless HTLC_ALLOW_MINT is set."""
    if not _config.allow_mint:
        raise HTTPException(403, "Minting disabled")
    ledger = get_ledger()
    if not hasattr(ledger.tokens, "mint"):
        raise HTTPException(501, "Token backend does not support minting")
    balance = ledger.tokens.mint(req.token_address, req.identity, req.amount)
    log.info(f"Dev mint: {req.amount} {req.token_address} -> {req.identity}")
    return {"token_address": req.token_address, "holder": req.identity, "balance": balance}
