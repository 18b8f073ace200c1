from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from core.domain.entities.price_sample_entity import PriceSampleEntity


class HistoricalPriceRepository(ABC):
    """
    Bulk historical price tables loaded once at startup.
    """

    @abstractmethod
    async def load_eth_minute(self) -> List[PriceSampleEntity]:
        """
        ETH closes keyed by minute start.
        """
        raise NotImplementedError

    @abstractmethod
    async def load_eth_hourly(self) -> List[PriceSampleEntity]:
        """
        ETH closes keyed by hour start.
        """
        raise NotImplementedError

    @abstractmethod
    async def load_btc_hourly(self) -> List[PriceSampleEntity]:
        """
        BTC closes keyed by hour start.
        """
        raise NotImplementedError
