from __future__ import annotations

import pytest

from config.settings import settings
from core.services.price_cache_service import PriceCacheService
from core.services.price_resolver_service import PriceResolverService
from core.services.rate_limiter_service import TokenBucketRateLimiter
from core.services.swap_log_classifier_service import SwapLogClassifierService

from swap_fixtures import FakeLivePriceRepository


@pytest.fixture
def live_prices() -> FakeLivePriceRepository:
    return FakeLivePriceRepository()


@pytest.fixture
def price_cache() -> PriceCacheService:
    return PriceCacheService()


@pytest.fixture
def resolver(live_prices, price_cache) -> PriceResolverService:
    return PriceResolverService(
        live_price_repository=live_prices,
        price_cache=price_cache,
        rate_limiter=TokenBucketRateLimiter(capacity=1000, refill_interval_s=1.0),
        historical_cutoff=settings.HISTORICAL_PRICE_CUTOFF,
    )


@pytest.fixture
def make_classifier(resolver):
    def _make(chain, *, tolerance_pct: float = 10.0) -> SwapLogClassifierService:
        return SwapLogClassifierService(
            chain_repository=chain,
            price_resolver=resolver,
            weth_address=settings.WETH_ADDRESS,
            wbtc_address=settings.WBTC_ADDRESS,
            stable_addresses=settings.stable_addresses,
            quote_addresses=settings.quote_addresses,
            v2_swap_topic=settings.UNISWAP_V2_SWAP_TOPIC,
            v3_swap_topic=settings.UNISWAP_V3_SWAP_TOPIC,
            transfer_topic=settings.TRANSFER_TOPIC,
            sync_topic=settings.SYNC_TOPIC,
            match_tolerance_pct=tolerance_pct,
        )

    return _make
