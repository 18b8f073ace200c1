# core/usecases/generate_historical_summary_use_case.py
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, List

from core.domain.entities.price_sample_entity import HOUR_SECONDS
from core.domain.entities.time_window_entity import TimeWindowEntity
from core.services.batch_collector_service import BatchCollectorService
from core.services.enrichment_pipeline_service import EnrichmentPipelineService
from core.services.window_aggregator_service import WindowAggregatorService


def paginate(items: List[TimeWindowEntity], page: int, limit: int) -> Dict[str, Any]:
    """
    Slice `items` for a 1-based page; the page is clamped to [1, total_pages].
    """
    total = len(items)
    total_pages = math.ceil(total / limit) if limit else 0
    current_page = max(1, min(page, total_pages))
    offset = (current_page - 1) * limit
    return {
        "current_page": current_page,
        "total_pages": total_pages,
        "total_items": total,
        "per_page": limit,
        "items": items[offset: offset + limit],
    }


class GenerateHistoricalSummaryUseCase:
    """
    Hourly windows of a token over an explicit date range, most recent first, paginated.

    Every hour of the range is present, including hours without trades.
    """

    def __init__(
        self,
        *,
        collector: BatchCollectorService,
        pipeline: EnrichmentPipelineService,
        aggregator: WindowAggregatorService,
        concurrency: int,
        logger: logging.Logger | None = None,
    ):
        self._collector = collector
        self._pipeline = pipeline
        self._aggregator = aggregator
        self._concurrency = int(concurrency)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        *,
        token_address: str,
        from_date: datetime,
        to_date: datetime,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        hashes = await self._collector.collect_range(token_address, from_date, to_date)
        trades = []
        if hashes:
            trades = await self._pipeline.enrich(
                hashes, concurrency=self._concurrency, token_address=token_address, historical=True
            )

        windows = self._aggregator.aggregate(
            trades,
            HOUR_SECONDS,
            int(from_date.timestamp()),
            int(to_date.timestamp()),
        )
        return paginate(windows, page, limit)
