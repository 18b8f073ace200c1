from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

from core.domain.entities.price_sample_entity import (
    MINUTE_SECONDS,
    PriceSampleEntity,
    hour_bucket,
    minute_bucket,
)

ETH = "ETH"
BTC = "BTC"


class PriceCacheService:
    """
    Process-wide price state, constructed once at startup and injected where needed.

    Holds:
    - hourly historical tables keyed by (asset, hour bucket), bulk-loaded from files;
    - the ETH per-minute table keyed by minute start;
    - the live memo keyed by (asset, hour bucket), filled lazily during runs.

    Every map is append-only: inserts never overwrite an existing entry, so concurrent
    coroutines can share it without locking.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._hourly: Dict[Tuple[str, int], float] = {}
        self._eth_minute: Dict[int, float] = {}
        self._live: Dict[Tuple[str, int], float] = {}

    @property
    def has_eth_minute_table(self) -> bool:
        return bool(self._eth_minute)

    def load_hourly(self, samples: Iterable[PriceSampleEntity]) -> int:
        """
        Insert hourly samples, keeping the first value seen per (asset, bucket).
        """
        added = 0
        for s in samples:
            key = (s.asset.upper(), hour_bucket(s.bucket))
            if key not in self._hourly:
                self._hourly[key] = float(s.price)
                added += 1
        return added

    def load_eth_minute(self, samples: Iterable[PriceSampleEntity]) -> int:
        added = 0
        for s in samples:
            if s.bucket not in self._eth_minute:
                self._eth_minute[int(s.bucket)] = float(s.price)
                added += 1
        return added

    def historical_hourly(self, asset: str, ts: int) -> Optional[float]:
        return self._hourly.get((asset.upper(), hour_bucket(ts)))

    def historical_eth_minute(self, ts: int, max_distance_s: int = MINUTE_SECONDS) -> Optional[float]:
        """
        Exact sample at ts, else the nearest sample no further than max_distance_s away.
        """
        exact = self._eth_minute.get(int(ts))
        if exact is not None:
            return exact

        base = minute_bucket(ts)
        best: Optional[float] = None
        best_diff: Optional[int] = None
        for key in (base - MINUTE_SECONDS, base, base + MINUTE_SECONDS):
            price = self._eth_minute.get(key)
            if price is None:
                continue
            diff = abs(key - int(ts))
            if diff <= max_distance_s and (best_diff is None or diff < best_diff):
                best, best_diff = price, diff
        return best

    def get(self, asset: str, bucket: int) -> Optional[float]:
        return self._live.get((asset, hour_bucket(bucket)))

    def put_if_absent(self, asset: str, bucket: int, price: float) -> float:
        """
        Insert a live price unless the (asset, bucket) entry exists; return the stored value.
        """
        return self._live.setdefault((asset, hour_bucket(bucket)), float(price))

    def stats(self) -> Dict[str, int]:
        return {
            "hourly": len(self._hourly),
            "eth_minute": len(self._eth_minute),
            "live": len(self._live),
        }
