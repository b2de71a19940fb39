"""Devnet ledger REST API routes.

Routes:
    GET    /api/v1/ledger                     — Block height and all balances
    POST   /api/v1/ledger/blocks              — Mine blocks
    POST   /api/v1/ledger/faucet              — Credit an account (development only)
    GET    /api/v1/ledger/accounts/{account}  — Balance of one account
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ledger_custody.api.deps import get_app_settings, get_ledger
from ledger_custody.config import Settings
from ledger_custody.infrastructure.ledger import InMemoryLedger
from ledger_custody.logging_config import get_logger
from ledger_custody.schemas.custody import (
    AccountResponse,
    FaucetRequest,
    LedgerResponse,
    MineBlocksRequest,
)

router = APIRouter(prefix="/api/v1/ledger", tags=["Ledger"])
logger = get_logger(__name__)


@router.get("", response_model=LedgerResponse, summary="Ledger snapshot")
def get_ledger_snapshot(ledger: InMemoryLedger = Depends(get_ledger)) -> LedgerResponse:
    return LedgerResponse(block_height=ledger.block_height, balances=ledger.balances())


@router.post("/blocks", response_model=LedgerResponse, summary="Mine blocks")
def mine_blocks(
    request: MineBlocksRequest,
    ledger: InMemoryLedger = Depends(get_ledger),
) -> LedgerResponse:
    """Advance the block-height clock."""
    height = ledger.mine(request.blocks)
    logger.info("ledger.blocks_mined", blocks=request.blocks, height=height)
    return LedgerResponse(block_height=height, balances=ledger.balances())


@router.post("/faucet", response_model=AccountResponse, summary="Credit an account")
def faucet(
    request: FaucetRequest,
    ledger: InMemoryLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> AccountResponse:
    """Mint devnet funds into ``account``."""
    if not settings.is_development:
        raise HTTPException(status_code=403, detail="Faucet is only available in development")
    if request.amount > settings.faucet_max_amount:
        raise HTTPException(
            status_code=422,
            detail=f"Faucet amount exceeds limit of {settings.faucet_max_amount}",
        )
    balance = ledger.credit(request.account, request.amount)
    logger.info("ledger.faucet", account=request.account, amount=request.amount)
    return AccountResponse(account=request.account, balance=balance)


@router.get(
    "/accounts/{account}",
    response_model=AccountResponse,
    summary="Account balance",
)
def get_account(
    account: str,
    ledger: InMemoryLedger = Depends(get_ledger),
) -> AccountResponse:
    return AccountResponse(account=account, balance=ledger.balance_of(account))
