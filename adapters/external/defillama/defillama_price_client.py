from __future__ import annotations

import logging
from typing import Optional

import httpx

from core.repositories.live_price_repository import LivePriceRepository

COIN_IDS = {
    "ETH": "coingecko:ethereum",
    "BTC": "coingecko:bitcoin",
}


class DefiLlamaPriceClient(LivePriceRepository):
    """
    Current USD prices from the DefiLlama coins API.

    GET /prices/current/{coin}?searchWidth=6h
      coin: coingecko:ethereum | coingecko:bitcoin | ethereum:{token_address}

    Failures are logged and reported as "no price".
    """

    def __init__(
        self,
        *,
        base_url: str = "https://coins.llama.fi",
        search_width: str = "6h",
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/")
        self._search_width = search_width
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=5.0))
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def coin_id(asset: str) -> str:
        return COIN_IDS.get(asset.upper(), f"ethereum:{asset.lower()}")

    async def get_usd_price(self, asset: str) -> Optional[float]:
        coin = self.coin_id(asset)
        try:
            r = await self._client.get(
                f"{self._base_url}/prices/current/{coin}",
                params={"searchWidth": self._search_width},
                headers={"Accept": "application/json"},
            )
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("Live price request failed coin=%s: %s", coin, exc)
            return None

        price = ((data or {}).get("coins") or {}).get(coin, {}).get("price")
        return float(price) if price else None
