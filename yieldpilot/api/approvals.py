"""
Approvals API Endpoints

Review the allowances a wallet has granted and revoke them.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.approvals import ApprovalManager
from .dependencies import get_approval_manager

router = APIRouter(prefix="/approvals", tags=["Approvals"])


class ReviewRequest(BaseModel):
    token: str = Field(description="ERC-20 symbol or address")
    chain: str = "base"
    wallet_address: str = Field(alias="walletAddress")
    spenders: Optional[List[str]] = Field(default=None, description="Extra spender addresses to check")

    model_config = {"populate_by_name": True}


class RevokeRequest(BaseModel):
    token: str
    spender: str = Field(description="Address whose allowance is set to zero")
    chain: str = "base"
    wallet_address: str = Field(alias="walletAddress")
    execute: bool = Field(default=True, description="False returns the preview without writing")

    model_config = {"populate_by_name": True}


@router.post("/review")
async def post_review(
    request: ReviewRequest,
    manager: ApprovalManager = Depends(get_approval_manager),
) -> Dict[str, Any]:
    """List non-zero allowances for known routers, lending venues and ``spenders``."""
    result = await manager.review(
        request.token,
        request.chain,
        wallet_address=request.wallet_address,
        spenders=request.spenders,
    )
    return result.to_dict()


@router.post("/revoke")
async def post_revoke(
    request: RevokeRequest,
    manager: ApprovalManager = Depends(get_approval_manager),
) -> Dict[str, Any]:
    result = await manager.revoke(
        request.token,
        request.spender,
        request.chain,
        wallet_address=request.wallet_address,
        execute=request.execute,
    )
    return result.to_dict()
