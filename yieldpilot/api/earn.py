"""
Earn API Endpoints

Plan, deposit into and withdraw from lending venues.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.earn import EarnManager
from .dependencies import get_earn_manager

router = APIRouter(prefix="/earn", tags=["Earn"])


# =============================================================================
# Request Models
# =============================================================================


class PlanRequest(BaseModel):
    asset: str = Field(description="Token symbol or address to earn yield on")
    amount: Optional[str] = Field(default=None, description="Decimal amount; omit to only rank venues")
    chains: Optional[List[str]] = Field(default=None, description="Candidate chains (default: configured yield chains)")
    protocol: Optional[str] = Field(default=None, description="Restrict to one protocol id, e.g. aave-v3")
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")

    model_config = {"populate_by_name": True}


class DepositRequest(BaseModel):
    asset: str
    amount: str = Field(description="Decimal amount in token units, e.g. '100' or '0.5'")
    chains: Optional[List[str]] = None
    protocol: Optional[str] = None
    wallet_address: str = Field(alias="walletAddress")
    execute: bool = Field(default=True, description="False returns the preview without writing")

    model_config = {"populate_by_name": True}


class WithdrawRequest(BaseModel):
    asset: str
    amount: str = Field(default="all", description="Decimal amount, or 'max'/'all' for the whole position")
    chain: str = "base"
    protocol: str = "aave-v3"
    pool_symbol: Optional[str] = Field(default=None, alias="poolSymbol", description="Morpho vault symbol")
    wallet_address: str = Field(alias="walletAddress")
    execute: bool = True

    model_config = {"populate_by_name": True}


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/plan")
async def post_plan(
    request: PlanRequest,
    manager: EarnManager = Depends(get_earn_manager),
) -> Dict[str, Any]:
    """Rank yield opportunities, or preview a deposit when an amount is given."""
    result = await manager.plan(
        request.asset,
        request.amount,
        request.chains,
        request.protocol,
        wallet_address=request.wallet_address,
    )
    return result.to_dict()


@router.post("/deposit")
async def post_deposit(
    request: DepositRequest,
    manager: EarnManager = Depends(get_earn_manager),
) -> Dict[str, Any]:
    result = await manager.deposit(
        request.asset,
        request.amount,
        request.chains,
        request.protocol,
        wallet_address=request.wallet_address,
        execute=request.execute,
    )
    return result.to_dict()


@router.post("/withdraw")
async def post_withdraw(
    request: WithdrawRequest,
    manager: EarnManager = Depends(get_earn_manager),
) -> Dict[str, Any]:
    result = await manager.withdraw(
        request.asset,
        request.amount,
        request.chain,
        request.protocol,
        wallet_address=request.wallet_address,
        pool_symbol=request.pool_symbol,
        execute=request.execute,
    )
    return result.to_dict()
