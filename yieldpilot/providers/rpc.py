"""JSON-RPC reader for balances, allowances and venue positions."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.amounts import format_raw_amount
from ..core.chains import resolve_chain
from ..core.encoding import (
    ERC20_DECIMALS_SELECTOR,
    MAX_UINT256,
    encode_allowance,
    encode_balance_of,
)
from ..core.errors import UpstreamUnavailableError
from ..core.protocols.base import EncodedCall
from ..core.tokens import Asset, resolve_asset
from .http import request

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


@dataclass(frozen=True)
class TokenAmount:
    raw: int
    decimals: int

    @property
    def formatted(self) -> str:
        return format_raw_amount(self.raw, self.decimals)


class ChainReader:
    """Read-only chain access used for pre-flight checks."""

    name = "rpc"

    def __init__(
        self,
        rpc_urls: Optional[Dict[str, str]] = None,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._rpc_urls = {k.lower(): v for k, v in (rpc_urls or {}).items()}
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def rpc_url(self, chain: str) -> str:
        resolved = resolve_chain(chain)
        if resolved is None:
            raise ValueError(f"Unknown chain: {chain}")
        return self._rpc_urls.get(resolved.name) or settings.rpc_url_for(resolved.name, resolved.default_rpc_url)

    async def _rpc_call(self, chain: str, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(_ids),
        }
        try:
            response = await request(
                "POST",
                [self.rpc_url(chain)],
                "",
                provider=self.name,
                timeout_s=self.timeout_s,
                transport=self._transport,
                chain=chain,
                json=payload,
            )
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                method, provider=self.name, chain=chain, reason=f"HTTP {exc.response.status_code}"
            ) from exc

        result = response.json()
        if "error" in result:
            raise UpstreamUnavailableError(method, provider=self.name, chain=chain, reason=str(result["error"]))
        return result.get("result")

    async def read_uint(self, chain: str, to: str, data: str) -> int:
        result = await self._rpc_call(chain, "eth_call", [{"to": to, "data": data}, "latest"])
        if not result or result == "0x":
            return 0
        # Only the first word matters for single-uint returns
        return int(result[2:66], 16)

    async def get_balance(self, asset: Asset, owner: str) -> TokenAmount:
        if asset.is_native:
            result = await self._rpc_call(asset.chain, "eth_getBalance", [owner, "latest"])
            return TokenAmount(int(result or "0x0", 16), asset.decimals)
        raw = await self.read_uint(asset.chain, asset.address, encode_balance_of(owner))
        return TokenAmount(raw, asset.decimals)

    async def get_allowance(self, asset: Asset, owner: str, spender: str) -> TokenAmount:
        if asset.is_native:
            return TokenAmount(MAX_UINT256, asset.decimals)
        raw = await self.read_uint(asset.chain, asset.address, encode_allowance(owner, spender))
        return TokenAmount(raw, asset.decimals)

    async def read_position(self, query: EncodedCall, chain: str, decimals: int) -> TokenAmount:
        """Run an adapter's position query and return the withdrawable amount."""
        raw = await self.read_uint(chain, query.to, query.data)
        return TokenAmount(raw, decimals)

    async def resolve_asset(self, token: str, chain: str) -> Optional[Asset]:
        """Known symbols and addresses first, then ``decimals()`` for unknown addresses."""
        asset = resolve_asset(token, chain)
        if asset is not None or not token.startswith("0x"):
            return asset
        resolved = resolve_chain(chain)
        if resolved is None:
            return None
        decimals = await self.read_uint(resolved.name, token, ERC20_DECIMALS_SELECTOR)
        logger.info("Resolved %s on %s via decimals() = %d", token, resolved.name, decimals)
        return Asset(symbol=token.lower(), address=token.lower(), decimals=decimals, chain=resolved.name)
