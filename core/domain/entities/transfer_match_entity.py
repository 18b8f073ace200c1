from __future__ import annotations

from enum import Enum

from core.domain.entities.base_entity import AnalyticsEntity
from core.domain.entities.receipt_entity import LogEntryEntity


class AssetRole(str, Enum):
    WETH = "WETH"
    WBTC = "WBTC"
    STABLE = "STABLE"
    TOKEN = "TOKEN"


class CounterAssetKind(str, Enum):
    """
    Which quote legs a swap was settled against.
    """

    ETH = "ETH"                  # WETH leg only
    ETH_STABLE = "ETH_STABLE"    # WETH + stable legs (multi-hop)
    BTC_STABLE = "BTC_STABLE"    # WBTC + stable legs (multi-hop)
    STABLE = "STABLE"            # stable leg only


class AssetTransferMatch(AnalyticsEntity):
    """
    A transfer log matched to an asset role of a swap.
    """

    role: AssetRole
    log: LogEntryEntity
    value: int

    @property
    def asset_address(self) -> str:
        return self.log.address.lower()
