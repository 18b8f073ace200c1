"""
Application configuration for api-token-analytics.

Centralizes environment variables using python-dotenv.

Note:
- Addresses and topics default to Ethereum mainnet values.
- Historical price files are optional; missing files only disable the historical tables.
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _csv_list(raw: str) -> List[str]:
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


class Settings:
    """
    Configuration settings for the api-token-analytics service.
    """

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_NAME: str = os.getenv("APP_NAME", "api-token-analytics")
    ALLOWED_ORIGINS: List[str] = _csv_list(os.getenv("ALLOWED_ORIGINS", "http://localhost:8000"))

    # Chain node
    RPC_HTTP_URL: str = os.getenv("RPC_HTTP_URL", "http://localhost:8545")
    RPC_TIMEOUT_S: float = float(os.getenv("RPC_TIMEOUT_S", "20"))

    # Transfer indexer (Moralis)
    MORALIS_BASE_URL: str = os.getenv("MORALIS_BASE_URL", "https://deep-index.moralis.io/api/v2.2")
    MORALIS_API_KEY: str = os.getenv("MORALIS_API_KEY", "")
    MORALIS_CHAIN: str = os.getenv("MORALIS_CHAIN", "eth")
    TRANSFER_PAGE_SIZE: int = int(os.getenv("TRANSFER_PAGE_SIZE", "100"))
    RECENT_MAX_BATCHES: int = int(os.getenv("RECENT_MAX_BATCHES", "5"))

    # Live prices (DefiLlama) + token bucket guarding them
    LIVE_PRICE_BASE_URL: str = os.getenv("LIVE_PRICE_BASE_URL", "https://coins.llama.fi")
    PRICE_RATE_LIMIT_CAPACITY: int = int(os.getenv("PRICE_RATE_LIMIT_CAPACITY", "10"))
    PRICE_RATE_LIMIT_REFILL_S: float = float(os.getenv("PRICE_RATE_LIMIT_REFILL_S", "1.0"))
    PRICE_RATE_LIMIT_MIN_INTERVAL_S: float = float(os.getenv("PRICE_RATE_LIMIT_MIN_INTERVAL_S", "0.0"))

    # Historical price tables
    HISTORICAL_PRICE_CUTOFF: int = int(os.getenv("HISTORICAL_PRICE_CUTOFF", "1751922000"))
    ETH_MINUTE_PRICES_FILE: str = os.getenv("ETH_MINUTE_PRICES_FILE", "resources/ETHUSD_1m_Binance.csv")
    ETH_HOURLY_PRICES_FILE: str = os.getenv("ETH_HOURLY_PRICES_FILE", "resources/BYBIT_ETHUSDT_1h.csv")
    BTC_HOURLY_PRICES_FILE: str = os.getenv("BTC_HOURLY_PRICES_FILE", "resources/btc_1h_data_2018_to_2025.csv")

    # Quote assets
    WETH_ADDRESS: str = os.getenv("WETH_ADDRESS", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2").lower()
    WBTC_ADDRESS: str = os.getenv("WBTC_ADDRESS", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599").lower()
    DAI_ADDRESS: str = os.getenv("DAI_ADDRESS", "0x6b175474e89094c44da98b954eedeac495271d0f").lower()
    USDT_ADDRESS: str = os.getenv("USDT_ADDRESS", "0xdac17f958d2ee523a2206206994597c13d831ec7").lower()
    USDC_ADDRESS: str = os.getenv("USDC_ADDRESS", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48").lower()
    TUSD_ADDRESS: str = os.getenv("TUSD_ADDRESS", "0x0000000000085d4780b73119b644ae5ecd22b376").lower()
    USDP_ADDRESS: str = os.getenv("USDP_ADDRESS", "0x8e870d67f660d95d5be530380d0ec0bd388289e1").lower()

    # Log topics
    UNISWAP_V2_SWAP_TOPIC: str = os.getenv(
        "UNISWAP_V2_SWAP_TOPIC", "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"
    ).lower()
    UNISWAP_V3_SWAP_TOPIC: str = os.getenv(
        "UNISWAP_V3_SWAP_TOPIC", "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"
    ).lower()
    TRANSFER_TOPIC: str = os.getenv(
        "TRANSFER_TOPIC", "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    ).lower()
    SYNC_TOPIC: str = os.getenv(
        "SYNC_TOPIC", "0x1c411e9a96e071241c2f21f7726b17ae89e3cab4c78be50e062b03a9fffbbad1"
    ).lower()

    # Classification
    MATCH_TOLERANCE_PCT: float = float(os.getenv("MATCH_TOLERANCE_PCT", "10"))

    # Enrichment concurrency
    LIVE_CONCURRENCY: int = int(os.getenv("LIVE_CONCURRENCY", "70"))
    HISTORICAL_CONCURRENCY: int = int(os.getenv("HISTORICAL_CONCURRENCY", "60"))
    DATASET_CONCURRENCY: int = int(os.getenv("DATASET_CONCURRENCY", "2000"))

    # Dataset export
    DATASET_BATCH_SIZE: int = int(os.getenv("DATASET_BATCH_SIZE", "10000"))
    DATASET_OUTPUT_DIR: str = os.getenv("DATASET_OUTPUT_DIR", "output")
    DATASET_HASHES_FILE: str = os.getenv("DATASET_HASHES_FILE", "")

    @property
    def stable_addresses(self) -> List[str]:
        """
        Stable-class quote assets used as USD price basis.
        """
        return [self.USDT_ADDRESS, self.USDC_ADDRESS, self.DAI_ADDRESS]

    @property
    def quote_addresses(self) -> List[str]:
        """
        Full quote allow-list used to split a pool into base/quote.
        """
        return [
            self.WETH_ADDRESS,
            self.DAI_ADDRESS,
            self.USDT_ADDRESS,
            self.USDC_ADDRESS,
            self.TUSD_ADDRESS,
            self.USDP_ADDRESS,
            self.WBTC_ADDRESS,
        ]


settings = Settings()
