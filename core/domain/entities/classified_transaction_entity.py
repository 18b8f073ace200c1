from __future__ import annotations

from enum import Enum
from typing import Optional

from core.domain.entities.base_entity import AnalyticsEntity
from core.domain.entities.swap_event_entity import SwapProtocol


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class ClassifiedTransactionEntity(AnalyticsEntity):
    """
    Canonical enriched output of the swap classifier: one DEX trade of the primary token.

    Optional fields are explicitly nullable:
      - eth_reserve/token_reserve: only when the pool emitted a Sync log and is quoted in WETH.
      - eth_price/btc_price: None when no price source could resolve them.
      - token_price_usd: None when the token amount is zero.
    """

    tx_hash: str
    trade_type: TradeType
    protocol: SwapProtocol
    pool_address: str

    token_address: str
    token_name: str
    token_symbol: str
    token_decimals: int
    token_total_supply: Optional[float] = None

    token_amount: float
    eth_amount: float = 0.0
    usd_value: float = 0.0
    token_price_usd: Optional[float] = None

    eth_reserve: Optional[float] = None
    token_reserve: Optional[float] = None

    eth_price: Optional[float] = None
    btc_price: Optional[float] = None

    block_number: int
    timestamp: int
    multi_swap: bool = False

    @property
    def is_buy(self) -> bool:
        return self.trade_type == TradeType.BUY.value

    @property
    def is_sell(self) -> bool:
        return self.trade_type == TradeType.SELL.value
