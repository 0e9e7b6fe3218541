"""Morpho curated vaults (ERC-4626): the pool address is the vault itself.

A full exit must go through ``redeem`` with max shares. ``withdraw`` takes an
asset amount, so passing the max sentinel there would ask for more assets than
the vault holds and revert.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..amounts import to_raw_amount
from ..encoding import MAX_UINT256, build_calldata, encode_address, encode_uint256
from ..errors import VenueUnavailableError
from ..tokens import KNOWN_TOKENS
from .base import (
    EncodedCall,
    SupplyRequest,
    WithdrawRequest,
    asset_symbol,
    finish,
    supply_amount,
)

DEPOSIT_SELECTOR = "0x6e553f65"  # deposit(uint256,address)
WITHDRAW_SELECTOR = "0xb460af94"  # withdraw(uint256,address,address)
REDEEM_SELECTOR = "0xba087652"  # redeem(uint256,address,address)
MAX_WITHDRAW_SELECTOR = "0xce96cb77"  # maxWithdraw(address)


@dataclass(frozen=True)
class MorphoVault:
    symbol: str
    address: str
    asset: str
    curator: str


def _vaults(*vaults: MorphoVault) -> Mapping[str, MorphoVault]:
    return MappingProxyType({vault.symbol: vault for vault in vaults})


VAULTS: Mapping[str, Mapping[str, MorphoVault]] = MappingProxyType({
    "base": _vaults(
        MorphoVault("STEAKUSDC", "0x6ABfd6139c7C3CC270ee2Ce132E309F59cAaF6a2", "USDC", "Steakhouse"),
        MorphoVault("GTUSDCP", "0x12AfDe9a6FEAfb0c1C06B7EC8D58c47542c9E656", "USDC", "Gauntlet"),
        MorphoVault("SPARKUSDC", "0x7BfA7C4f149E7415b73bdeDfe609237e29CBF34A", "USDC", "Spark"),
        MorphoVault("SEAMLESSUSDC", "0x616a4E1db48e22028f6bbf20444Cd3b8e3273738", "USDC", "Seamless"),
    ),
    "arbitrum": _vaults(
        MorphoVault("BBQUSDC", "0x8F25d6AE3ACB22C40D4F76e36c0C2a7A2fB7c1F5", "USDC", "BBQ"),
    ),
    "ethereum": _vaults(
        MorphoVault("STEAKUSDC", "0xBEEF01735c132Ada46AA9aA4c54623cAA92A64CB", "USDC", "Steakhouse"),
        MorphoVault("GTUSDCP", "0xdd0f28e19C1780eb6396170735D45153D261490d", "USDC", "Gauntlet"),
    ),
})

# chain -> base asset -> vault symbol used when only the asset is named
DEFAULT_VAULTS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "base": MappingProxyType({"USDC": "STEAKUSDC"}),
    "arbitrum": MappingProxyType({"USDC": "BBQUSDC"}),
    "ethereum": MappingProxyType({"USDC": "STEAKUSDC"}),
})

_VAULT_ASSETS = {vault.symbol: vault.asset for chain in VAULTS.values() for vault in chain.values()}
# Longest first so "USDC.E" wins over "USDC"
_BASE_SYMBOLS = tuple(sorted(set(KNOWN_TOKENS) | set(_VAULT_ASSETS.values()), key=lambda s: (-len(s), s)))


def strip_vault_symbol(symbol: str) -> str:
    """Reduce a vault symbol to its underlying asset symbol.

    Configured vaults map to their recorded asset. Other names fall back to
    the longest known asset symbol they contain, and finally to themselves.
    """
    upper = symbol.strip().upper()
    if upper in _VAULT_ASSETS:
        return _VAULT_ASSETS[upper]
    for base in _BASE_SYMBOLS:
        if base in upper:
            return base
    return upper


class MorphoAdapter:
    protocol_id = "morpho-v1"
    display_name = "Morpho"

    @property
    def supported_chains(self) -> Tuple[str, ...]:
        return tuple(VAULTS)

    def resolve_vault(self, chain: str, symbol: str) -> Optional[MorphoVault]:
        """Look up a vault by its own symbol, or the default vault for a bare asset symbol.

        Unconfigured vault names (e.g. ``RE7USDC``) resolve to nothing rather
        than to the default vault of their underlying asset.
        """
        vaults = VAULTS.get(chain.lower(), {})
        upper = symbol.strip().upper()
        if upper in vaults:
            return vaults[upper]
        if strip_vault_symbol(upper) != upper:
            return None
        default = DEFAULT_VAULTS.get(chain.lower(), {}).get(upper)
        return vaults.get(default) if default else None

    def resolve_pool(self, chain: str, symbol: Optional[str] = None) -> Optional[str]:
        vault = self.resolve_vault(chain, symbol or "USDC")
        return vault.address if vault else None

    def resolve_receipt_token(self, asset: str, chain: str) -> Optional[str]:
        # Vault shares are the vault contract itself.
        symbol = asset_symbol(asset, chain.lower())
        return self.resolve_pool(chain, symbol) if symbol else None

    def _vault_address(self, asset: str, chain: str, pool_symbol: Optional[str]) -> str:
        underlying = asset_symbol(asset, chain.lower())
        symbol = pool_symbol or underlying
        vault = self.resolve_vault(chain, symbol) if symbol else None
        if vault is None or (underlying is not None and vault.asset != underlying):
            raise VenueUnavailableError(chain, self.protocol_id, asset=symbol or asset)
        return vault.address

    def encode_supply(self, req: SupplyRequest) -> EncodedCall:
        vault = self._vault_address(req.asset, req.chain, req.pool_symbol)
        amount = supply_amount(req)
        data = build_calldata(DEPOSIT_SELECTOR, encode_uint256(amount), encode_address(req.on_behalf_of))
        return finish(vault, data, DEPOSIT_SELECTOR, 2, amount, "deposit")

    def encode_withdraw(self, req: WithdrawRequest) -> EncodedCall:
        vault = self._vault_address(req.asset, req.chain, req.pool_symbol)
        receiver = encode_address(req.recipient)
        if req.is_max:
            # Owner and receiver are the same wallet.
            data = build_calldata(REDEEM_SELECTOR, encode_uint256(MAX_UINT256), receiver, receiver)
            return finish(vault, data, REDEEM_SELECTOR, 3, MAX_UINT256, "redeem")

        amount = to_raw_amount(req.amount, req.decimals)
        data = build_calldata(WITHDRAW_SELECTOR, encode_uint256(amount), receiver, receiver)
        return finish(vault, data, WITHDRAW_SELECTOR, 3, amount, "withdraw")

    def encode_position_query(
        self,
        asset: str,
        chain: str,
        owner: str,
        pool_symbol: Optional[str] = None,
    ) -> EncodedCall:
        """``maxWithdraw(owner)`` reports the position in asset units, not shares."""
        vault = self._vault_address(asset, chain, pool_symbol)
        data = build_calldata(MAX_WITHDRAW_SELECTOR, encode_address(owner))
        return finish(vault, data, MAX_WITHDRAW_SELECTOR, 1, 0, "maxWithdraw")
