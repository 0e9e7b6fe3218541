"""Venue registry: protocol id -> adapter.

Ids match the project names used by the DefiLlama yields API so ranked
opportunities can be dispatched without translation.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Optional

from .aave_v3 import AaveV3Adapter
from .base import EncodedCall, ProtocolAdapter, SupplyRequest, WithdrawRequest
from .compound_v3 import CompoundV3Adapter
from .morpho import MorphoAdapter, strip_vault_symbol

_ADAPTERS: Mapping[str, ProtocolAdapter] = MappingProxyType({
    adapter.protocol_id: adapter
    for adapter in (AaveV3Adapter(), CompoundV3Adapter(), MorphoAdapter())
})


def get_protocol_adapter(protocol_id: str) -> Optional[ProtocolAdapter]:
    if not protocol_id:
        return None
    return _ADAPTERS.get(protocol_id.strip().lower())


def get_supported_protocols() -> List[str]:
    return list(_ADAPTERS)


def is_protocol_supported(protocol_id: str) -> bool:
    return get_protocol_adapter(protocol_id) is not None


__all__ = [
    "AaveV3Adapter",
    "CompoundV3Adapter",
    "EncodedCall",
    "MorphoAdapter",
    "ProtocolAdapter",
    "SupplyRequest",
    "WithdrawRequest",
    "get_protocol_adapter",
    "get_supported_protocols",
    "is_protocol_supported",
    "strip_vault_symbol",
]
