# core/usecases/generate_hourly_summary_use_case.py
from __future__ import annotations

import logging
import time
from typing import Callable, List

from core.domain.entities.price_sample_entity import HOUR_SECONDS
from core.domain.entities.time_window_entity import TimeWindowEntity
from core.services.batch_collector_service import BatchCollectorService
from core.services.enrichment_pipeline_service import EnrichmentPipelineService
from core.services.window_aggregator_service import WindowAggregatorService


class GenerateHourlySummaryUseCase:
    """
    Summary of the most recent trading hour of a token.

    Flow:
      - collect recent transfer hashes (recency-bounded)
      - enrich them with live prices
      - window = [now - 1h, now] when any trade is in the last hour,
        else the hour ending at the most recent trade
      - return [window] or [] when the window holds no trade
    """

    def __init__(
        self,
        *,
        collector: BatchCollectorService,
        pipeline: EnrichmentPipelineService,
        aggregator: WindowAggregatorService,
        max_batches: int,
        concurrency: int,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._collector = collector
        self._pipeline = pipeline
        self._aggregator = aggregator
        self._max_batches = int(max_batches)
        self._concurrency = int(concurrency)
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(self, token_address: str) -> List[TimeWindowEntity]:
        hashes = await self._collector.collect_recent(token_address, max_batches=self._max_batches)
        if not hashes:
            return []

        trades = await self._pipeline.enrich(
            hashes, concurrency=self._concurrency, token_address=token_address, historical=False
        )
        if not trades:
            self._logger.info("No valid transactions to analyze for %s", token_address)
            return []
        trades.sort(key=lambda t: t.timestamp)

        now = int(self._clock())
        one_hour_ago = now - HOUR_SECONDS
        if any(t.timestamp >= one_hour_ago for t in trades):
            window_start = one_hour_ago
        else:
            window_start = trades[-1].timestamp - HOUR_SECONDS

        in_window = [t for t in trades if window_start <= t.timestamp <= window_start + HOUR_SECONDS]
        self._logger.info(
            "Found %s transaction(s) in window starting %s for %s", len(in_window), window_start, token_address
        )
        if not in_window:
            return []
        return [self._aggregator.summarize(window_start, HOUR_SECONDS, in_window)]
