from __future__ import annotations

import asyncio
import csv
import logging
import os
from typing import Dict, List, Optional

from core.domain.entities.dataset_entity import DatasetEntity
from core.domain.entities.time_window_entity import TimeWindowEntity
from core.domain.errors import DataNotFoundError
from core.repositories.dataset_repository import DatasetRepository

DATASET_COLUMNS = [
    "minStartUTC",
    "minEndUTC",
    "startBlock",
    "endBlock",
    "totalTxns",
    "buyCount",
    "sellCount",
    "activeAddressCount",
    "lastTokenPrice",
    "latestTokenPrice",
    "avgTokenPrice",
    "tokenVolume",
    "tokenVolumeUSD",
    "ethPrice",
    "btcPrice",
]

NOT_AVAILABLE = "N/A"


def _price(value: Optional[float]) -> str:
    return f"{value:.2f}" if value else NOT_AVAILABLE


def window_row(window: TimeWindowEntity) -> Dict[str, object]:
    return {
        "minStartUTC": window.start_utc,
        "minEndUTC": window.end_utc,
        "startBlock": window.start_block if window.start_block is not None else NOT_AVAILABLE,
        "endBlock": window.end_block if window.end_block is not None else NOT_AVAILABLE,
        "totalTxns": window.total_txns,
        "buyCount": window.buy_count,
        "sellCount": window.sell_count,
        "activeAddressCount": window.active_address_count,
        "lastTokenPrice": window.first_token_price,
        "latestTokenPrice": window.latest_token_price,
        "avgTokenPrice": window.avg_token_price,
        "tokenVolume": f"{window.token_volume:.2f}",
        "tokenVolumeUSD": f"{window.token_volume_usd:.2f}",
        "ethPrice": _price(window.eth_price),
        "btcPrice": _price(window.btc_price),
    }


class CsvDatasetRepository(DatasetRepository):
    """
    Writes each export batch to <output_dir>/<token_address>/batch_<n>.csv.
    """

    def __init__(self, *, output_dir: str, logger: logging.Logger | None = None) -> None:
        self._output_dir = output_dir
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def batch_path(self, token_address: str, batch_number: int) -> str:
        return os.path.join(self._output_dir, token_address, f"batch_{batch_number}.csv")

    async def exists(self, token_address: str, batch_number: int) -> bool:
        return os.path.exists(self.batch_path(token_address, batch_number))

    async def save(self, dataset: DatasetEntity) -> str:
        path = self.batch_path(dataset.token_address, dataset.batch_number)
        await asyncio.to_thread(self._write, path, dataset.windows)
        return path

    @staticmethod
    def _write(path: str, windows: List[TimeWindowEntity]) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp = f"{path}.tmp"
        with open(tmp, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=DATASET_COLUMNS)
            writer.writeheader()
            for window in windows:
                writer.writerow(window_row(window))
        os.replace(tmp, path)

    async def read_transaction_hashes(self, source: str) -> List[str]:
        if not os.path.exists(source):
            raise DataNotFoundError(f"CSV file not found at: {os.path.abspath(source)}")
        hashes = await asyncio.to_thread(self._read_hashes, source)
        if not hashes:
            self._logger.warning("No transaction hashes found in %s", source)
        return hashes

    @staticmethod
    def _read_hashes(source: str) -> List[str]:
        seen: Dict[str, None] = {}
        with open(source, newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                value = (row.get("transaction_hash") or "").strip().lower()
                if value:
                    seen.setdefault(value, None)
        return list(seen)
