from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from core.domain.entities.classified_transaction_entity import ClassifiedTransactionEntity
from core.domain.entities.time_window_entity import TimeWindowEntity


class WindowAggregatorService:
    """
    Buckets classified trades into gap-free, UTC-aligned windows.

    Rules:
    - One window per `width` seconds from floor(from_ts) to floor(to_ts), both inclusive,
      created before any trade is placed.
    - A trade lands in floor(timestamp / width) * width; trades outside the range are dropped.
    - Output is most recent first.

    Per-window token price precedence for each trade:
      reserve-derived (eth_reserve * eth_price / token_reserve) -> token_price_usd -> usd_value / token_amount -> 0
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def align(ts: int, width: int) -> int:
        return (int(ts) // width) * width

    def aggregate(
        self,
        transactions: Sequence[ClassifiedTransactionEntity],
        width: int,
        from_ts: int,
        to_ts: int,
    ) -> List[TimeWindowEntity]:
        if width <= 0:
            raise ValueError("width must be > 0")
        first = self.align(from_ts, width)
        last = self.align(to_ts, width)
        if last < first:
            return []

        buckets: Dict[int, List[ClassifiedTransactionEntity]] = {
            start: [] for start in range(first, last + width, width)
        }

        dropped = 0
        for tx in sorted(transactions, key=lambda t: t.timestamp):
            bucket = buckets.get(self.align(tx.timestamp, width))
            if bucket is None:
                dropped += 1
                continue
            bucket.append(tx)
        if dropped:
            self._logger.debug("Dropped %s transaction(s) outside [%s, %s]", dropped, first, last)

        windows = [self.summarize(start, width, txs) for start, txs in buckets.items()]
        windows.reverse()
        self._logger.info(
            "Built %s window(s) of %ss, %s non-empty",
            len(windows),
            width,
            sum(1 for w in windows if not w.is_empty),
        )
        return windows

    def summarize(
        self, window_start: int, width: int, transactions: Sequence[ClassifiedTransactionEntity]
    ) -> TimeWindowEntity:
        """
        Aggregate one window; transactions are expected in chronological order.
        """
        trades = [t for t in transactions if t.is_buy or t.is_sell]
        buy_count = sum(1 for t in trades if t.is_buy)
        sell_count = sum(1 for t in trades if t.is_sell)

        eth_price = (trades[-1].eth_price or None) if trades else None
        btc_price = (trades[-1].btc_price or None) if trades else None

        prices = [self.trade_price(t, eth_price) for t in trades]
        blocks = [t.block_number for t in transactions]

        return TimeWindowEntity(
            window_start=window_start,
            window_end=window_start + width,
            transactions=list(transactions),
            total_txns=len(transactions),
            buy_count=buy_count,
            sell_count=sell_count,
            active_address_count=buy_count + sell_count,
            token_volume=sum(t.token_amount or 0.0 for t in trades),
            token_volume_usd=sum(t.usd_value or 0.0 for t in trades),
            first_token_price=prices[0] if prices else 0.0,
            latest_token_price=prices[-1] if prices else 0.0,
            avg_token_price=sum(prices) / len(prices) if prices else 0.0,
            eth_price=eth_price,
            btc_price=btc_price,
            start_block=min(blocks) if blocks else None,
            end_block=max(blocks) if blocks else None,
            transaction_hashes=[t.tx_hash for t in transactions],
            multi_swap=any(t.multi_swap for t in transactions),
        )

    @staticmethod
    def trade_price(tx: ClassifiedTransactionEntity, eth_price: Optional[float]) -> float:
        if tx.eth_reserve and tx.token_reserve and eth_price:
            return tx.eth_reserve * eth_price / tx.token_reserve
        if tx.token_price_usd:
            return tx.token_price_usd
        if tx.usd_value and tx.token_amount:
            return tx.usd_value / tx.token_amount
        return 0.0
