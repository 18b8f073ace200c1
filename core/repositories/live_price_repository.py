from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class LivePriceRepository(ABC):
    """Current USD price lookups ("ETH", "BTC" or a token address)."""

    @abstractmethod
    async def get_usd_price(self, asset: str) -> Optional[float]: ...
