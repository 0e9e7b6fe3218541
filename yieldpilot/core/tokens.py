"""Known-symbol token table and asset resolution."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from .chains import resolve_chain

NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
NATIVE_SYMBOLS = frozenset({"ETH", "MATIC", "NATIVE"})


@dataclass(frozen=True)
class Asset:
    """A fungible token on one chain. ``address`` is the native sentinel for gas tokens."""

    symbol: str
    address: str
    decimals: int
    chain: str

    @property
    def is_native(self) -> bool:
        return self.address.lower() == NATIVE_TOKEN_ADDRESS.lower()

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "address": self.address,
            "decimals": self.decimals,
            "chain": self.chain,
        }


# symbol -> (decimals, chain -> address)
KNOWN_TOKENS: Mapping[str, tuple[int, Mapping[str, str]]] = MappingProxyType({
    "USDC": (6, MappingProxyType({
        "ethereum": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        "base": "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        "arbitrum": "0xaf88d065e77c8cc2239327c5edb3a432268e5831",
        "optimism": "0x0b2c639c533813f4aa9d7837caf62653d097ff85",
        "polygon": "0x3c499c542cef5e3811e1192ce70d8cc03d5c3359",
    })),
    "USDT": (6, MappingProxyType({
        "ethereum": "0xdac17f958d2ee523a2206206994597c13d831ec7",
        "arbitrum": "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",
        "optimism": "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58",
        "polygon": "0xc2132d05d31c914a87c6611c10748aeb04b58e8f",
    })),
    "DAI": (18, MappingProxyType({
        "ethereum": "0x6b175474e89094c44da98b954eedeac495271d0f",
        "base": "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",
        "arbitrum": "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",
        "optimism": "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",
        "polygon": "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063",
    })),
    "WETH": (18, MappingProxyType({
        "ethereum": "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
        "base": "0x4200000000000000000000000000000000000006",
        "arbitrum": "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        "optimism": "0x4200000000000000000000000000000000000006",
        "polygon": "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619",
    })),
    "WBTC": (8, MappingProxyType({
        "ethereum": "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",
        "arbitrum": "0x2f2a2543b76a4166549f7aab2e75bef0aefc5b0f",
        "optimism": "0x68f180fcce6836688e9084f035309e29bf0a2095",
        "polygon": "0x1bfd67037b42cf73acf2047067bd4f2c47d9bfd6",
    })),
})


def is_native(token: str) -> bool:
    return token.upper() in NATIVE_SYMBOLS or token.lower() == NATIVE_TOKEN_ADDRESS.lower()


def resolve_asset(token: str, chain: str) -> Optional[Asset]:
    """Resolve a symbol or address to an :class:`Asset` on ``chain``.

    Addresses are matched against the known table only. Unknown addresses
    need an on-chain ``decimals()`` read, see ``ChainReader.resolve_asset``.
    """
    resolved_chain = resolve_chain(chain)
    if resolved_chain is None or not token:
        return None
    chain_name = resolved_chain.name
    token = token.strip()

    if is_native(token):
        return Asset(resolved_chain.native_symbol, NATIVE_TOKEN_ADDRESS, 18, chain_name)

    if token.startswith("0x"):
        lowered = token.lower()
        for symbol, (decimals, addresses) in KNOWN_TOKENS.items():
            if addresses.get(chain_name) == lowered:
                return Asset(symbol, lowered, decimals, chain_name)
        return None

    entry = KNOWN_TOKENS.get(token.upper())
    if entry is None:
        return None
    decimals, addresses = entry
    address = addresses.get(chain_name)
    if address is None:
        return None
    return Asset(token.upper(), address, decimals, chain_name)
