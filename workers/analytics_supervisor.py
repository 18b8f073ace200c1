from __future__ import annotations

import contextlib
import logging
from typing import Optional

from adapters.external.defillama.defillama_price_client import DefiLlamaPriceClient
from adapters.external.ethereum.ethereum_chain_repository import EthereumChainRepository
from adapters.external.ethereum.json_rpc_http_client import JsonRpcHttpClient
from adapters.external.files.csv_dataset_repository import CsvDatasetRepository
from adapters.external.files.csv_historical_price_repository import CsvHistoricalPriceRepository
from adapters.external.moralis.moralis_http_client import MoralisHttpClient
from adapters.external.moralis.moralis_transfer_event_repository import MoralisTransferEventRepository
from config.settings import Settings, settings as default_settings
from core.repositories.historical_price_repository import HistoricalPriceRepository
from core.services.batch_collector_service import BatchCollectorService
from core.services.enrichment_pipeline_service import EnrichmentPipelineService
from core.services.price_cache_service import PriceCacheService
from core.services.price_resolver_service import PriceResolverService
from core.services.rate_limiter_service import TokenBucketRateLimiter
from core.services.swap_log_classifier_service import SwapLogClassifierService
from core.services.window_aggregator_service import WindowAggregatorService
from core.usecases.generate_dataset_use_case import GenerateDatasetUseCase
from core.usecases.generate_historical_summary_use_case import GenerateHistoricalSummaryUseCase
from core.usecases.generate_hourly_summary_use_case import GenerateHourlySummaryUseCase


class AnalyticsSupervisor:
    """
    High-level supervisor for api-token-analytics.

    Responsibilities:
    - Build external clients (RPC node, Moralis, DefiLlama) once per process.
    - Build the process-wide price cache and load the historical price files into it.
    - Wire services and expose the three use cases to the HTTP layer.
    - Close clients on shutdown.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._settings = config or default_settings
        self._logger = logging.getLogger(self.__class__.__name__)

        self._rpc: JsonRpcHttpClient | None = None
        self._moralis: MoralisHttpClient | None = None
        self._prices: DefiLlamaPriceClient | None = None

        self.price_cache: PriceCacheService | None = None
        self.hourly_summary_use_case: Optional[GenerateHourlySummaryUseCase] = None
        self.historical_summary_use_case: Optional[GenerateHistoricalSummaryUseCase] = None
        self.dataset_use_case: Optional[GenerateDatasetUseCase] = None

    async def start(self) -> None:
        """
        Initialize clients, load historical prices and build the use cases.
        """
        s = self._settings

        self._rpc = JsonRpcHttpClient(endpoint=s.RPC_HTTP_URL, timeout_s=s.RPC_TIMEOUT_S)
        self._moralis = MoralisHttpClient(base_url=s.MORALIS_BASE_URL, api_key=s.MORALIS_API_KEY)
        self._prices = DefiLlamaPriceClient(base_url=s.LIVE_PRICE_BASE_URL)

        chain = EthereumChainRepository(rpc=self._rpc)
        transfers = MoralisTransferEventRepository(client=self._moralis, chain=s.MORALIS_CHAIN)

        self.price_cache = PriceCacheService()
        await self.load_historical_prices(
            self.price_cache,
            CsvHistoricalPriceRepository(
                eth_minute_file=s.ETH_MINUTE_PRICES_FILE,
                eth_hourly_file=s.ETH_HOURLY_PRICES_FILE,
                btc_hourly_file=s.BTC_HOURLY_PRICES_FILE,
            ),
        )

        resolver = PriceResolverService(
            live_price_repository=self._prices,
            price_cache=self.price_cache,
            rate_limiter=TokenBucketRateLimiter(
                capacity=s.PRICE_RATE_LIMIT_CAPACITY,
                refill_interval_s=s.PRICE_RATE_LIMIT_REFILL_S,
                min_interval_s=s.PRICE_RATE_LIMIT_MIN_INTERVAL_S,
            ),
            historical_cutoff=s.HISTORICAL_PRICE_CUTOFF,
        )
        classifier = SwapLogClassifierService(
            chain_repository=chain,
            price_resolver=resolver,
            weth_address=s.WETH_ADDRESS,
            wbtc_address=s.WBTC_ADDRESS,
            stable_addresses=s.stable_addresses,
            quote_addresses=s.quote_addresses,
            v2_swap_topic=s.UNISWAP_V2_SWAP_TOPIC,
            v3_swap_topic=s.UNISWAP_V3_SWAP_TOPIC,
            transfer_topic=s.TRANSFER_TOPIC,
            sync_topic=s.SYNC_TOPIC,
            match_tolerance_pct=s.MATCH_TOLERANCE_PCT,
        )
        pipeline = EnrichmentPipelineService(chain_repository=chain, classifier=classifier)
        collector = BatchCollectorService(transfer_repository=transfers, page_size=s.TRANSFER_PAGE_SIZE)
        aggregator = WindowAggregatorService()

        self.hourly_summary_use_case = GenerateHourlySummaryUseCase(
            collector=collector,
            pipeline=pipeline,
            aggregator=aggregator,
            max_batches=s.RECENT_MAX_BATCHES,
            concurrency=s.LIVE_CONCURRENCY,
        )
        self.historical_summary_use_case = GenerateHistoricalSummaryUseCase(
            collector=collector,
            pipeline=pipeline,
            aggregator=aggregator,
            concurrency=s.HISTORICAL_CONCURRENCY,
        )
        self.dataset_use_case = GenerateDatasetUseCase(
            collector=collector,
            pipeline=pipeline,
            aggregator=aggregator,
            dataset_repository=CsvDatasetRepository(output_dir=s.DATASET_OUTPUT_DIR),
            batch_size=s.DATASET_BATCH_SIZE,
            concurrency=s.DATASET_CONCURRENCY,
            hashes_source=s.DATASET_HASHES_FILE,
        )
        self._logger.info("Analytics supervisor started. price_cache=%s", self.price_cache.stats())

    async def load_historical_prices(self, cache: PriceCacheService, source: HistoricalPriceRepository) -> None:
        minute = cache.load_eth_minute(await source.load_eth_minute())
        eth_hourly = cache.load_hourly(await source.load_eth_hourly())
        btc_hourly = cache.load_hourly(await source.load_btc_hourly())
        self._logger.info(
            "Historical prices loaded: eth_minute=%s eth_hourly=%s btc_hourly=%s", minute, eth_hourly, btc_hourly
        )

    async def stop(self) -> None:
        """
        Close external clients.
        """
        for client in (self._rpc, self._moralis, self._prices):
            if client is not None:
                with contextlib.suppress(Exception):
                    await client.aclose()
        self._rpc = self._moralis = self._prices = None
