"""Compound V3 (Comet): one isolated market per base asset per chain."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..encoding import ERC20_BALANCE_OF_SELECTOR, build_calldata, encode_address, encode_uint256
from ..errors import VenueUnavailableError
from .base import EncodedCall, SupplyRequest, WithdrawRequest, finish, supply_amount, withdraw_amount

SUPPLY_SELECTOR = "0xf2b9fdb8"  # supply(address,uint256)
WITHDRAW_SELECTOR = "0xf3fef3a3"  # withdraw(address,uint256)

# Market used when the caller names no base asset
DEFAULT_MARKET = "USDC"

COMET_MARKETS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "ethereum": MappingProxyType({
        "USDC": "0xc3d688B66703497DAA19211EEdff47f25384cdc3",
        "WETH": "0xA17581A9E3356d9A858b789D68B4d866e593aE94",
    }),
    "base": MappingProxyType({
        "USDC": "0xb125E6687d4313864e53df431d5425969c15Eb2F",
        "USDBC": "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf",
        "WETH": "0x46e6b214b524310239732D51387075E0e70970bf",
    }),
    "arbitrum": MappingProxyType({
        "USDC": "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf",
        "USDC.E": "0xA5EDBDD9646f8dFF606d7448e414884C7d905dCA",
        "WETH": "0x6f7D514bbD4aFf3BcD1140B7344b32f063dEe486",
    }),
    "polygon": MappingProxyType({
        "USDC": "0xF25212E676D1F7F89Cd72fFEe66158f541246445",
    }),
    "optimism": MappingProxyType({
        "USDC": "0x2e44e174f7D53F0212823acC11C01A11d58c5bCB",
        "WETH": "0xE36A30D249f7761327fd973001A32010b521b6Fd",
    }),
})

# Base asset token of each market, used to map a request's asset back to its market
BASE_ASSETS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "ethereum": MappingProxyType({
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    }),
    "base": MappingProxyType({
        "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "USDBC": "0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA",
        "WETH": "0x4200000000000000000000000000000000000006",
    }),
    "arbitrum": MappingProxyType({
        "USDC": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "USDC.E": "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",
        "WETH": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    }),
    "polygon": MappingProxyType({
        "USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    }),
    "optimism": MappingProxyType({
        "USDC": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        "WETH": "0x4200000000000000000000000000000000000006",
    }),
})


class CompoundV3Adapter:
    protocol_id = "compound-v3"
    display_name = "Compound V3"

    @property
    def supported_chains(self) -> Tuple[str, ...]:
        return tuple(COMET_MARKETS)

    def resolve_pool(self, chain: str, symbol: Optional[str] = None) -> Optional[str]:
        markets = COMET_MARKETS.get(chain.lower(), {})
        return markets.get((symbol or DEFAULT_MARKET).upper())

    def resolve_receipt_token(self, asset: str, chain: str) -> Optional[str]:
        # Comet is its own receipt token.
        symbol = self.market_symbol(asset, chain)
        return self.resolve_pool(chain, symbol) if symbol else None

    def market_symbol(self, asset: str, chain: str) -> Optional[str]:
        """Map a base-asset address (or symbol) to the market symbol on ``chain``."""
        bases = BASE_ASSETS.get(chain.lower(), {})
        if not asset.startswith("0x"):
            return asset.upper() if asset.upper() in bases else None
        lowered = asset.lower()
        for symbol, address in bases.items():
            if address.lower() == lowered:
                return symbol
        return None

    def _market(self, asset: str, chain: str, pool_symbol: Optional[str]) -> str:
        own_market = self.market_symbol(asset, chain)
        symbol = pool_symbol.upper() if pool_symbol else own_market
        market = self.resolve_pool(chain, symbol) if symbol else None
        # A named market must take the asset being moved as its base asset
        if market is None or (asset.startswith("0x") and symbol != own_market):
            raise VenueUnavailableError(chain, self.protocol_id, asset=pool_symbol or asset)
        return market

    def encode_supply(self, req: SupplyRequest) -> EncodedCall:
        market = self._market(req.asset, req.chain, req.pool_symbol)
        amount = supply_amount(req)
        data = build_calldata(SUPPLY_SELECTOR, encode_address(req.asset), encode_uint256(amount))
        return finish(market, data, SUPPLY_SELECTOR, 2, amount, "supply")

    def encode_withdraw(self, req: WithdrawRequest) -> EncodedCall:
        market = self._market(req.asset, req.chain, req.pool_symbol)
        amount = withdraw_amount(req)
        data = build_calldata(WITHDRAW_SELECTOR, encode_address(req.asset), encode_uint256(amount))
        return finish(market, data, WITHDRAW_SELECTOR, 2, amount, "withdraw")

    def encode_position_query(
        self,
        asset: str,
        chain: str,
        owner: str,
        pool_symbol: Optional[str] = None,
    ) -> EncodedCall:
        """``balanceOf(owner)`` on the market returns the supplied base asset."""
        market = self._market(asset, chain, pool_symbol)
        data = build_calldata(ERC20_BALANCE_OF_SELECTOR, encode_address(owner))
        return finish(market, data, ERC20_BALANCE_OF_SELECTOR, 1, 0, "balanceOf")
