"""
Tests for the venue registry and the three lending adapters.

Calldata is asserted byte-for-byte against hand-assembled vectors.
"""

import pytest

from yieldpilot.core.encoding import MAX_UINT256, calldata_words, encode_address, encode_uint256
from yieldpilot.core.errors import EncodeInvariantViolation, NotANumberError, VenueUnavailableError
from yieldpilot.core.protocols import (
    AaveV3Adapter,
    CompoundV3Adapter,
    EncodedCall,
    MorphoAdapter,
    ProtocolAdapter,
    SupplyRequest,
    WithdrawRequest,
    get_protocol_adapter,
    get_supported_protocols,
    is_protocol_supported,
    strip_vault_symbol,
)
from yieldpilot.core.protocols import aave_v3, compound_v3, morpho
from yieldpilot.core.tokens import KNOWN_TOKENS

WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f1e9A6"
USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
ZERO_WORD = "0" * 64
MAX_WORD = "f" * 64


def supply(amount="100", chain="base", asset=USDC_BASE, decimals=6, pool_symbol=None):
    return SupplyRequest(
        asset=asset,
        amount=amount,
        decimals=decimals,
        on_behalf_of=WALLET,
        chain=chain,
        pool_symbol=pool_symbol,
    )


def withdraw(amount="100", chain="base", asset=USDC_BASE, decimals=6, pool_symbol=None):
    return WithdrawRequest(
        asset=asset,
        amount=amount,
        decimals=decimals,
        recipient=WALLET,
        chain=chain,
        pool_symbol=pool_symbol,
    )


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:

    def test_supported_protocols(self):
        assert get_supported_protocols() == ["aave-v3", "compound-v3", "morpho-v1"]

    @pytest.mark.parametrize("protocol_id", ["aave-v3", "AAVE-V3", " Aave-V3 "])
    def test_lookup_is_case_insensitive(self, protocol_id):
        assert isinstance(get_protocol_adapter(protocol_id), AaveV3Adapter)

    def test_unknown_protocol(self):
        assert get_protocol_adapter("euler") is None
        assert get_protocol_adapter("") is None
        assert is_protocol_supported("euler") is False

    def test_adapters_satisfy_protocol(self):
        for protocol_id in get_supported_protocols():
            adapter = get_protocol_adapter(protocol_id)
            assert isinstance(adapter, ProtocolAdapter)
            assert adapter.protocol_id == protocol_id
            assert adapter.display_name


# =============================================================================
# Aave V3
# =============================================================================

class TestAaveV3:

    @pytest.fixture
    def adapter(self):
        return AaveV3Adapter()

    def test_supply_vector(self, adapter):
        """100 USDC on Base for the test wallet, referral code 0."""
        call = adapter.encode_supply(supply())
        assert call.to == aave_v3.POOL_ADDRESSES["base"]
        assert call.data == (
            "0x617ba037"
            "000000000000000000000000833589fcd6edb6e08f4c7c32d4f71b54bda02913"
            "0000000000000000000000000000000000000000000000000000000005f5e100"
            "000000000000000000000000742d35cc6634c0532925a3b844bc9e7595f1e9a6"
            "0000000000000000000000000000000000000000000000000000000000000000"
        )
        assert len(call.data) == 10 + 4 * 64
        assert call.amount_raw == 100_000_000
        assert call.function == "supply"

    def test_withdraw_amount(self, adapter):
        call = adapter.encode_withdraw(withdraw("25.5"))
        assert call.selector == aave_v3.WITHDRAW_SELECTOR
        assert calldata_words(call.data) == [
            encode_address(USDC_BASE),
            encode_uint256(25_500_000),
            encode_address(WALLET),
        ]

    def test_withdraw_max_and_all_are_identical(self, adapter):
        by_max = adapter.encode_withdraw(withdraw("max"))
        by_all = adapter.encode_withdraw(withdraw("all"))
        assert by_max.data == by_all.data
        assert calldata_words(by_max.data)[1] == MAX_WORD
        assert by_max.is_max

    def test_position_query_targets_atoken(self, adapter):
        call = adapter.encode_position_query(USDC_BASE, "base", WALLET)
        assert call.to == aave_v3.ATOKENS["base"]["USDC"]
        assert call.function == "balanceOf"

    def test_unknown_chain(self, adapter):
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(chain="fantom"))

    def test_unknown_atoken(self, adapter):
        with pytest.raises(VenueUnavailableError):
            adapter.encode_position_query("0x" + "12" * 20, "base", WALLET)

    def test_bad_amount_propagates(self, adapter):
        with pytest.raises(NotANumberError):
            adapter.encode_supply(supply("abc"))


# =============================================================================
# Compound V3
# =============================================================================

class TestCompoundV3:

    @pytest.fixture
    def adapter(self):
        return CompoundV3Adapter()

    def test_supply_targets_usdc_market(self, adapter):
        call = adapter.encode_supply(supply())
        assert call.to == compound_v3.COMET_MARKETS["base"]["USDC"]
        assert call.data == (
            compound_v3.SUPPLY_SELECTOR + encode_address(USDC_BASE) + encode_uint256(100_000_000)
        )
        assert len(call.data) == 10 + 2 * 64

    def test_withdraw_max_and_all_are_identical(self, adapter):
        by_max = adapter.encode_withdraw(withdraw("MAX"))
        by_all = adapter.encode_withdraw(withdraw("all"))
        assert by_max.data == by_all.data
        assert by_max.data.endswith(MAX_WORD)
        assert by_max.amount_raw == MAX_UINT256

    def test_market_symbol_from_address(self, adapter):
        weth = "0x4200000000000000000000000000000000000006"
        assert adapter.market_symbol(weth, "base") == "WETH"
        assert adapter.market_symbol("usdc", "arbitrum") == "USDC"

    def test_unknown_asset_has_no_market(self, adapter):
        """An asset without its own market is an error, not a USDC fallback."""
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(asset="0x" + "ab" * 20))

    def test_explicit_pool_symbol(self, adapter):
        weth = "0x4200000000000000000000000000000000000006"
        call = adapter.encode_supply(supply("1", asset=weth, decimals=18, pool_symbol="weth"))
        assert call.to == compound_v3.COMET_MARKETS["base"]["WETH"]

    def test_named_market_must_match_asset(self, adapter):
        """A USDbC market symbol never routes a native USDC deposit."""
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(pool_symbol="USDBC"))

    def test_position_query_is_balance_of_market(self, adapter):
        call = adapter.encode_position_query(USDC_BASE, "base", WALLET)
        assert call.to == compound_v3.COMET_MARKETS["base"]["USDC"]
        assert call.data[:10] == "0x70a08231"


# =============================================================================
# Morpho
# =============================================================================

class TestMorpho:

    @pytest.fixture
    def adapter(self):
        return MorphoAdapter()

    def test_deposit_into_default_vault(self, adapter):
        call = adapter.encode_supply(supply())
        assert call.to == morpho.VAULTS["base"]["STEAKUSDC"].address
        assert call.data == (
            morpho.DEPOSIT_SELECTOR + encode_uint256(100_000_000) + encode_address(WALLET)
        )

    def test_named_vault(self, adapter):
        call = adapter.encode_supply(supply(pool_symbol="gtUSDCp"))
        assert call.to == morpho.VAULTS["base"]["GTUSDCP"].address

    def test_partial_withdraw_uses_withdraw(self, adapter):
        call = adapter.encode_withdraw(withdraw("10"))
        assert call.selector == morpho.WITHDRAW_SELECTOR
        assert calldata_words(call.data) == [
            encode_uint256(10_000_000),
            encode_address(WALLET),
            encode_address(WALLET),
        ]
        assert call.function == "withdraw"

    def test_full_exit_uses_redeem(self, adapter):
        call = adapter.encode_withdraw(withdraw("max"))
        assert call.selector == morpho.REDEEM_SELECTOR
        assert calldata_words(call.data)[0] == MAX_WORD
        assert call.amount_raw == MAX_UINT256
        assert call.function == "redeem"

    def test_position_query_is_max_withdraw(self, adapter):
        call = adapter.encode_position_query(USDC_BASE, "base", WALLET)
        assert call.selector == morpho.MAX_WITHDRAW_SELECTOR
        assert call.to == morpho.VAULTS["base"]["STEAKUSDC"].address

    def test_chain_without_vaults(self, adapter):
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(chain="polygon"))

    def test_unconfigured_vault_name_is_unavailable(self, adapter):
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(pool_symbol="RE7USDC"))

    def test_vault_for_another_asset_is_unavailable(self, adapter):
        dai = KNOWN_TOKENS["DAI"][1]["base"]
        with pytest.raises(VenueUnavailableError):
            adapter.encode_supply(supply(asset=dai, decimals=18, pool_symbol="GTUSDCP"))

    def test_bare_asset_symbol_uses_default_vault(self, adapter):
        assert adapter.resolve_vault("base", "usdc") == morpho.VAULTS["base"]["STEAKUSDC"]


class TestStripVaultSymbol:

    def test_every_configured_vault_maps_to_a_known_asset(self):
        for vaults in morpho.VAULTS.values():
            for symbol, vault in vaults.items():
                stripped = strip_vault_symbol(symbol)
                assert stripped == vault.asset
                assert stripped in KNOWN_TOKENS

    def test_unknown_vault_falls_back_to_contained_symbol(self):
        assert strip_vault_symbol("re7WETH") == "WETH"
        assert strip_vault_symbol("mwUSDC.e") == "USDC"

    def test_unrecognized_name_is_returned(self):
        assert strip_vault_symbol("foo") == "FOO"


# =============================================================================
# Cross-adapter properties
# =============================================================================

class TestAdapterConsistency:

    @pytest.mark.parametrize("amount", ["100", "0.5", "1234.567891"])
    def test_same_amount_encodes_identically(self, amount):
        raws = {
            get_protocol_adapter(protocol_id).encode_supply(supply(amount)).amount_raw
            for protocol_id in get_supported_protocols()
        }
        assert len(raws) == 1

    def test_encoded_calls_verify(self):
        for protocol_id in get_supported_protocols():
            adapter = get_protocol_adapter(protocol_id)
            for call in (adapter.encode_supply(supply()), adapter.encode_withdraw(withdraw("max"))):
                assert call.verify() is call
                assert call.data == call.data.lower()

    def test_tampered_call_fails_verification(self):
        call = AaveV3Adapter().encode_supply(supply())
        tampered = EncodedCall(
            to=call.to,
            data=call.data + ZERO_WORD,
            amount_raw=call.amount_raw,
            expected_selector=call.expected_selector,
            word_count=call.word_count,
        )
        with pytest.raises(EncodeInvariantViolation):
            tampered.verify()
