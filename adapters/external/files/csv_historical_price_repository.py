from __future__ import annotations

import asyncio
import csv
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from core.domain.entities.price_sample_entity import PriceSampleEntity, hour_bucket, minute_bucket
from core.repositories.historical_price_repository import HistoricalPriceRepository


def parse_open_time(raw: str) -> Optional[int]:
    """
    Epoch seconds from an exchange export timestamp.

    Accepts epoch seconds/milliseconds or "YYYY-MM-DD HH:MM:SS[.ffffff][ UTC]" (naive values are UTC).
    """
    value = (raw or "").strip()
    if not value:
        return None
    if value.isdigit():
        n = int(value)
        return n // 1000 if n > 10 ** 11 else n
    value = value.replace(" UTC", "").replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class CsvHistoricalPriceRepository(HistoricalPriceRepository):
    """
    Historical closes exported by Binance/Bybit.

    Files:
      - ETH per-minute:  "Open time", "Close"
      - ETH hourly:      "Datetime",  "Close"
      - BTC hourly:      "Open time", "Close"

    A missing file is logged and yields no samples.
    """

    def __init__(
        self,
        *,
        eth_minute_file: str,
        eth_hourly_file: str,
        btc_hourly_file: str,
        logger: logging.Logger | None = None,
    ) -> None:
        self._eth_minute_file = eth_minute_file
        self._eth_hourly_file = eth_hourly_file
        self._btc_hourly_file = btc_hourly_file
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def load_eth_minute(self) -> List[PriceSampleEntity]:
        return await asyncio.to_thread(self._read, self._eth_minute_file, "ETH", "Open time", minute_bucket)

    async def load_eth_hourly(self) -> List[PriceSampleEntity]:
        return await asyncio.to_thread(self._read, self._eth_hourly_file, "ETH", "Datetime", hour_bucket)

    async def load_btc_hourly(self) -> List[PriceSampleEntity]:
        return await asyncio.to_thread(self._read, self._btc_hourly_file, "BTC", "Open time", hour_bucket)

    def _read(self, path: str, asset: str, time_column: str, bucket_fn) -> List[PriceSampleEntity]:
        if not path or not os.path.exists(path):
            self._logger.warning("Historical price file not found for %s: %s", asset, path)
            return []

        samples: List[PriceSampleEntity] = []
        skipped = 0
        with open(path, newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                ts = parse_open_time(row.get(time_column, ""))
                try:
                    price = float(row.get("Close") or "")
                except ValueError:
                    price = None
                if ts is None or not price:
                    skipped += 1
                    continue
                samples.append(PriceSampleEntity(asset=asset, bucket=bucket_fn(ts), price=price))

        self._logger.info("Loaded %s %s price rows from %s (skipped %s)", len(samples), asset, path, skipped)
        return samples
