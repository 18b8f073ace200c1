from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from core.domain.entities.base_entity import AnalyticsEntity
from core.domain.entities.classified_transaction_entity import ClassifiedTransactionEntity


def format_utc(ts: int) -> str:
    """
    Format epoch seconds as "YYYY-MM-DD HH:MM:SS" (UTC).
    """
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class TimeWindowEntity(AnalyticsEntity):
    """
    A fixed-width UTC bucket [window_start, window_end) and its aggregate.

    first_token_price is the price of the earliest trade of the bucket, latest_token_price the latest.
    Block bounds and reference prices are None for empty buckets.
    """

    window_start: int
    window_end: int
    transactions: List[ClassifiedTransactionEntity] = Field(default_factory=list)

    total_txns: int = 0
    buy_count: int = 0
    sell_count: int = 0
    active_address_count: int = 0

    token_volume: float = 0.0
    token_volume_usd: float = 0.0

    first_token_price: float = 0.0
    latest_token_price: float = 0.0
    avg_token_price: float = 0.0

    eth_price: Optional[float] = None
    btc_price: Optional[float] = None

    start_block: Optional[int] = None
    end_block: Optional[int] = None

    transaction_hashes: List[str] = Field(default_factory=list)
    multi_swap: bool = False

    @property
    def start_utc(self) -> str:
        return format_utc(self.window_start)

    @property
    def end_utc(self) -> str:
        return format_utc(self.window_end)

    @property
    def is_empty(self) -> bool:
        return self.total_txns == 0
