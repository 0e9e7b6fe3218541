"""Static chain metadata for the EVM networks the agent can act on."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class Chain:
    name: str
    chain_id: int
    native_symbol: str
    default_rpc_url: str
    explorer_url: str


CHAINS: Mapping[str, Chain] = MappingProxyType({
    "ethereum": Chain("ethereum", 1, "ETH", "https://eth.llamarpc.com", "https://etherscan.io"),
    "base": Chain("base", 8453, "ETH", "https://mainnet.base.org", "https://basescan.org"),
    "arbitrum": Chain("arbitrum", 42161, "ETH", "https://arb1.arbitrum.io/rpc", "https://arbiscan.io"),
    "optimism": Chain("optimism", 10, "ETH", "https://mainnet.optimism.io", "https://optimistic.etherscan.io"),
    "polygon": Chain("polygon", 137, "MATIC", "https://polygon-rpc.com", "https://polygonscan.com"),
})

CHAIN_ALIASES: Dict[str, str] = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "arb": "arbitrum",
    "op": "optimism",
    "matic": "polygon",
}

_BY_ID = {chain.chain_id: chain for chain in CHAINS.values()}


def resolve_chain(chain: str | int | None) -> Optional[Chain]:
    """Look a chain up by name, alias or numeric id."""
    if chain is None:
        return None
    if isinstance(chain, int):
        return _BY_ID.get(chain)
    key = str(chain).strip().lower()
    if key.isdigit():
        return _BY_ID.get(int(key))
    return CHAINS.get(CHAIN_ALIASES.get(key, key))


def normalize_chain(chain: str | int) -> Optional[str]:
    resolved = resolve_chain(chain)
    return resolved.name if resolved else None


def tx_url(chain: str, tx_hash: str) -> Optional[str]:
    resolved = resolve_chain(chain)
    if resolved is None or not tx_hash:
        return None
    return f"{resolved.explorer_url}/tx/{tx_hash}"
