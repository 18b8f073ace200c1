from __future__ import annotations

import logging
from typing import Optional

from core.repositories.live_price_repository import LivePriceRepository
from core.services.price_cache_service import BTC, ETH, PriceCacheService
from core.services.rate_limiter_service import TokenBucketRateLimiter


class PriceResolverService:
    """
    Resolves the USD price of ETH, BTC or a token at a timestamp.

    Precedence in historical mode:
      1) bulk historical table, only when timestamp <= historical_cutoff
         (ETH: minute table -> nearest minute within 60s -> hourly table; BTC: hourly table)
      2) live memo for (asset, hour bucket)
      3) live price service, memoized with insert-if-absent

    Non-historical mode always asks the live service and memoizes nothing.
    Every live call goes through the shared token bucket.
    """

    def __init__(
        self,
        *,
        live_price_repository: LivePriceRepository,
        price_cache: PriceCacheService,
        rate_limiter: TokenBucketRateLimiter,
        historical_cutoff: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self._live = live_price_repository
        self._cache = price_cache
        self._limiter = rate_limiter
        self._cutoff = int(historical_cutoff)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def normalize_asset(asset: str) -> str:
        a = (asset or "").strip()
        if a.upper() in (ETH, BTC):
            return a.upper()
        return a.lower()

    async def resolve(self, asset: str, timestamp: int, *, historical: bool) -> Optional[float]:
        asset = self.normalize_asset(asset)

        if not historical:
            return await self._fetch_live(asset)

        if int(timestamp) <= self._cutoff:
            sample = self._historical_sample(asset, int(timestamp))
            if sample is not None:
                return sample

        cached = self._cache.get(asset, int(timestamp))
        if cached is not None:
            return cached

        price = await self._fetch_live(asset)
        if price is None:
            self._logger.debug("No price for %s at %s", asset, timestamp)
            return None
        return self._cache.put_if_absent(asset, int(timestamp), price)

    def _historical_sample(self, asset: str, ts: int) -> Optional[float]:
        if asset == ETH and self._cache.has_eth_minute_table:
            minute_price = self._cache.historical_eth_minute(ts)
            if minute_price is not None:
                return minute_price
        return self._cache.historical_hourly(asset, ts)

    async def _fetch_live(self, asset: str) -> Optional[float]:
        async with self._limiter.slot():
            price = await self._live.get_usd_price(asset)
        return float(price) if price else None
