#!/usr/bin/env python3
"""
HTLC Escrow Server
Hashed timelock escrows over HTTP/JSON.

Endpoints:
  GET  /api/status                          - Health check
  POST /api/escrow                          - Create escrow (lock funds)
  GET  /api/escrow/{id}                     - Escrow record
  POST /api/escrow/{id}/withdraw            - Receiver claims with secret
  POST /api/escrow/{id}/cancel              - Sender refund after timelock
  POST /api/escrow/{id}/verify              - Check a secret against the hashlock
  GET  /api/escrow/{id}/can-cancel          - Refund available now?
  POST /api/secret-hash                     - Hash a secret
  GET  /api/secret/new                      - Random secret + hash
  GET  /api/balance/{token}                 - Ledger custody balance
  GET  /api/balance/{token}/{identity}      - Any identity's balance
  POST /api/dev/mint                        - Test faucet (HTLC_ALLOW_MINT=1)

Configuration (environment):
  HTLC_LEDGER_ADDRESS   custody identity (default: htlc-escrow-ledger)
  HTLC_HASH_ALGORITHM   keccak256 | sha256 (default: keccak256)
  HTLC_STORE_PATH       JSON file for escrow records (default: in-memory)
  HTLC_ALLOW_MINT       enable /api/dev/mint
  PORT                  listen port (default: 8080)

Run:
  python server.py
  uvicorn server:app --port 8080
"""

import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from htlc_escrow import LedgerConfig, __version__
from routes import escrow as escrow_routes

# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
log = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

CONFIG = LedgerConfig.from_env()


def create_app(config: LedgerConfig = None, ledger=None) -> FastAPI:
    """Build the FastAPI app around a ledger (built from config if not given)."""
    config = config or CONFIG
    if ledger is None:
        ledger = config.build_ledger()
    escrow_routes.configure(ledger, config)

    app = FastAPI(
        title="HTLC Escrow",
        description="Hashed timelock escrow ledger API",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(escrow_routes.router)

    log.info(f"Escrow ledger ready: address={config.ledger_address}, "
             f"hash={config.hash_algorithm}, "
             f"store={config.store_path or 'memory'}, mint={config.allow_mint}")
    return app


# Module-level app for `uvicorn server:app`
app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    log.info(f"Starting HTLC escrow server on port {port}")
    log.info(f"Docs: http://0.0.0.0:{port}/docs")
    uvicorn.run(app, host="0.0.0.0", port=port)
