"""
Tests for chain lookup and token resolution.
"""

import pytest

from yieldpilot.core.chains import normalize_chain, resolve_chain, tx_url
from yieldpilot.core.tokens import NATIVE_TOKEN_ADDRESS, is_native, resolve_asset


class TestChains:

    @pytest.mark.parametrize("value,expected", [
        ("base", "base"),
        ("Base", "base"),
        ("arb", "arbitrum"),
        ("mainnet", "ethereum"),
        (8453, "base"),
        ("42161", "arbitrum"),
    ])
    def test_resolution(self, value, expected):
        assert normalize_chain(value) == expected

    def test_unknown(self):
        assert resolve_chain("solana") is None
        assert resolve_chain(None) is None
        assert normalize_chain(999) is None

    def test_tx_url(self):
        assert tx_url("base", "0xabc") == "https://basescan.org/tx/0xabc"
        assert tx_url("solana", "0xabc") is None


class TestResolveAsset:

    def test_symbol(self):
        usdc = resolve_asset("usdc", "base")
        assert usdc.symbol == "USDC"
        assert usdc.decimals == 6
        assert usdc.address == "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"

    def test_address(self):
        weth = resolve_asset("0x4200000000000000000000000000000000000006", "optimism")
        assert weth.symbol == "WETH"
        assert weth.decimals == 18

    @pytest.mark.parametrize("token", ["ETH", "eth", "native", NATIVE_TOKEN_ADDRESS.lower()])
    def test_native(self, token):
        asset = resolve_asset(token, "base")
        assert asset.is_native
        assert asset.decimals == 18
        assert is_native(token)

    def test_polygon_native_symbol(self):
        assert resolve_asset("MATIC", "polygon").symbol == "MATIC"

    def test_symbol_missing_on_chain(self):
        assert resolve_asset("USDT", "base") is None

    def test_unknown_address(self):
        assert resolve_asset("0x" + "ab" * 20, "base") is None

    def test_unknown_chain(self):
        assert resolve_asset("USDC", "solana") is None
