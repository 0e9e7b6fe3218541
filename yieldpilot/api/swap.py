from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.swap import SwapManager
from .dependencies import get_swap_manager

router = APIRouter(prefix="/swap", tags=["Swap"])


class SwapRequest(BaseModel):
    from_token: str = Field(alias="fromToken", description="Symbol or address of the input token")
    to_token: str = Field(alias="toToken", description="Symbol or address of the output token")
    amount: str = Field(description="Decimal amount of the input token")
    chain: str = Field(default="base", description="Chain the swap runs on")
    wallet_address: str = Field(alias="walletAddress")
    execute: bool = Field(default=False, description="True submits the approval or the swap")
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=5000, alias="slippageBps")

    model_config = {"populate_by_name": True}


@router.post("")
async def post_swap(
    request: SwapRequest,
    manager: SwapManager = Depends(get_swap_manager),
) -> Dict[str, Any]:
    result = await manager.swap(
        request.from_token,
        request.to_token,
        request.amount,
        request.chain,
        wallet_address=request.wallet_address,
        execute=request.execute,
        slippage_bps=request.slippage_bps,
    )
    return result.to_dict()
