from fastapi import APIRouter
from typing import Dict, Any

from ..config import settings
from ..core.protocols import get_supported_protocols
from .dependencies import build_quote_sources

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Report which collaborators are configured. Makes no outbound calls."""
    quote_sources = [source.name for source in build_quote_sources()]

    return {
        "status": "healthy" if quote_sources and settings.has_signer else "degraded",
        "quote_sources": quote_sources,
        "signer_configured": settings.has_signer,
        "protocols": get_supported_protocols(),
        "yield_chains": list(settings.yield_chains),
    }
