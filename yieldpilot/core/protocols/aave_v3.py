"""Aave V3: one Pool contract per chain, aTokens keyed by underlying symbol."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..encoding import ERC20_BALANCE_OF_SELECTOR, build_calldata, encode_address, encode_uint256
from ..errors import VenueUnavailableError
from .base import (
    EncodedCall,
    SupplyRequest,
    WithdrawRequest,
    asset_symbol,
    finish,
    supply_amount,
    withdraw_amount,
)

SUPPLY_SELECTOR = "0x617ba037"  # supply(address,uint256,address,uint16)
WITHDRAW_SELECTOR = "0x69328dec"  # withdraw(address,uint256,address)
REFERRAL_CODE = 0

POOL_ADDRESSES: Mapping[str, str] = MappingProxyType({
    "ethereum": "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2",
    "base": "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5",
    "arbitrum": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "optimism": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "polygon": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
})

ATOKENS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "base": MappingProxyType({
        "USDC": "0x4e65fE4DbA92790696d040ac24Aa414708F5c0AB",
        "USDBC": "0x0a1d576f3eFeF75b330424287a95A366e8281D54",
        "WETH": "0xD4a0e0b9149BCee3C920d2E00b5dE09138fd8bb7",
    }),
    "arbitrum": MappingProxyType({
        "USDC": "0x724dc807b04555b71ed48a6896b6F41593b8C637",
        "USDC.E": "0x625E7708f30cA75bfd92586e17077590C60eb4cD",
        "USDT": "0x6ab707Aca953eDAeFBc4fD23bA73294241490620",
        "DAI": "0x82E64f49Ed5EC1bC6e43DAD4FC8Af9bb3A2312EE",
        "WETH": "0xe50fA9b3c56FfB159cB0FCA61F5c9D750e8128c8",
    }),
    "ethereum": MappingProxyType({
        "USDC": "0x98C23E9d8f34FEFb1B7BD6a91B7FF122F4e16F5c",
        "USDT": "0x23878914EFE38d27C4D67Ab83ed1b93A74D4086a",
        "DAI": "0x018008bfb33d285247A21d44E50697654f754e63",
        "WETH": "0x4d5F47FA6A74757f35C14fD3a6Ef8E3C9BC514E8",
    }),
    "optimism": MappingProxyType({
        "USDC": "0x625E7708f30cA75bfd92586e17077590C60eb4cD",
        "USDT": "0x6ab707Aca953eDAeFBc4fD23bA73294241490620",
        "DAI": "0x82E64f49Ed5EC1bC6e43DAD4FC8Af9bb3A2312EE",
        "WETH": "0xe50fA9b3c56FfB159cB0FCA61F5c9D750e8128c8",
    }),
    "polygon": MappingProxyType({
        "USDC": "0x625E7708f30cA75bfd92586e17077590C60eb4cD",
        "USDT": "0x6ab707Aca953eDAeFBc4fD23bA73294241490620",
        "DAI": "0x82E64f49Ed5EC1bC6e43DAD4FC8Af9bb3A2312EE",
        "WETH": "0xe50fA9b3c56FfB159cB0FCA61F5c9D750e8128c8",
    }),
})


class AaveV3Adapter:
    protocol_id = "aave-v3"
    display_name = "Aave V3"

    @property
    def supported_chains(self) -> Tuple[str, ...]:
        return tuple(POOL_ADDRESSES)

    def resolve_pool(self, chain: str, symbol: Optional[str] = None) -> Optional[str]:
        # The pool is shared by every reserve on the chain.
        return POOL_ADDRESSES.get(chain.lower())

    def resolve_receipt_token(self, asset: str, chain: str) -> Optional[str]:
        chain = chain.lower()
        symbol = asset_symbol(asset, chain)
        if symbol is None:
            return None
        return ATOKENS.get(chain, {}).get(symbol)

    def _pool(self, chain: str) -> str:
        pool = self.resolve_pool(chain)
        if pool is None:
            raise VenueUnavailableError(chain, self.protocol_id)
        return pool

    def encode_supply(self, req: SupplyRequest) -> EncodedCall:
        pool = self._pool(req.chain)
        amount = supply_amount(req)
        data = build_calldata(
            SUPPLY_SELECTOR,
            encode_address(req.asset),
            encode_uint256(amount),
            encode_address(req.on_behalf_of),
            encode_uint256(REFERRAL_CODE),
        )
        return finish(pool, data, SUPPLY_SELECTOR, 4, amount, "supply")

    def encode_withdraw(self, req: WithdrawRequest) -> EncodedCall:
        pool = self._pool(req.chain)
        amount = withdraw_amount(req)
        data = build_calldata(
            WITHDRAW_SELECTOR,
            encode_address(req.asset),
            encode_uint256(amount),
            encode_address(req.recipient),
        )
        return finish(pool, data, WITHDRAW_SELECTOR, 3, amount, "withdraw")

    def encode_position_query(
        self,
        asset: str,
        chain: str,
        owner: str,
        pool_symbol: Optional[str] = None,
    ) -> EncodedCall:
        """``balanceOf(owner)`` on the aToken; aTokens track the underlying 1:1."""
        atoken = self.resolve_receipt_token(asset, chain)
        if atoken is None:
            raise VenueUnavailableError(chain, self.protocol_id, asset=asset)
        data = build_calldata(ERC20_BALANCE_OF_SELECTOR, encode_address(owner))
        return finish(atoken, data, ERC20_BALANCE_OF_SELECTOR, 1, 0, "balanceOf")
