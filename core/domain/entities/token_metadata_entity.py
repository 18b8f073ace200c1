from __future__ import annotations

from typing import Optional

from core.domain.entities.base_entity import AnalyticsEntity


class TokenMetadataEntity(AnalyticsEntity):
    """
    ERC-20 metadata read from the token contract.

    total_supply is already normalized by decimals.
    """

    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: Optional[float] = None

    def to_units(self, raw_value: int) -> float:
        return raw_value / 10 ** self.decimals
