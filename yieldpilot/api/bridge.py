from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.bridge import BridgeManager
from .dependencies import get_bridge_manager

router = APIRouter(prefix="/bridge", tags=["Bridge"])


class BridgeRequest(BaseModel):
    from_token: str = Field(alias="fromToken")
    to_token: Optional[str] = Field(default=None, alias="toToken", description="Defaults to the source token")
    amount: str
    from_chain: str = Field(alias="fromChain")
    to_chain: str = Field(alias="toChain")
    wallet_address: str = Field(alias="walletAddress")
    execute: bool = False
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=5000, alias="slippageBps")

    model_config = {"populate_by_name": True}


@router.post("")
async def post_bridge(
    request: BridgeRequest,
    manager: BridgeManager = Depends(get_bridge_manager),
) -> Dict[str, Any]:
    """Quote a cross-chain transfer, or settle it when ``execute`` is set."""
    result = await manager.bridge(
        request.from_token,
        request.to_token,
        request.amount,
        request.from_chain,
        request.to_chain,
        wallet_address=request.wallet_address,
        execute=request.execute,
        slippage_bps=request.slippage_bps,
    )
    return result.to_dict()
