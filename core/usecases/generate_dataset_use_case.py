# core/usecases/generate_dataset_use_case.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from core.domain.entities.dataset_entity import DatasetEntity, DatasetExportSummary
from core.domain.entities.price_sample_entity import MINUTE_SECONDS
from core.repositories.dataset_repository import DatasetRepository
from core.services.batch_collector_service import BatchCollectorService
from core.services.enrichment_pipeline_service import EnrichmentPipelineService
from core.services.window_aggregator_service import WindowAggregatorService


class GenerateDatasetUseCase:
    """
    Bulk export of per-minute windows for a token, one dataset per fixed-size hash batch.

    - Hashes come from the hashes file when one is configured, else from the indexer (range mode).
    - A batch whose output already exists is skipped before any fetch, so reruns resume.
    - Each written dataset holds the non-empty minute windows, most recent first.
    - A batch without valid transactions is not saved, nor is one whose enrichment aborted on an
      upstream failure; both are retried on the next run.
    """

    def __init__(
        self,
        *,
        collector: BatchCollectorService,
        pipeline: EnrichmentPipelineService,
        aggregator: WindowAggregatorService,
        dataset_repository: DatasetRepository,
        batch_size: int,
        concurrency: int,
        hashes_source: Optional[str] = None,
        logger: logging.Logger | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._collector = collector
        self._pipeline = pipeline
        self._aggregator = aggregator
        self._datasets = dataset_repository
        self._batch_size = int(batch_size)
        self._concurrency = int(concurrency)
        self._hashes_source = hashes_source or None
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        *,
        token_address: str,
        from_date: datetime,
        to_date: datetime,
    ) -> DatasetExportSummary:
        hashes = await self._load_hashes(token_address, from_date, to_date)
        self._logger.info("Found %s unique transactions for %s", len(hashes), token_address)

        from_ts = int(from_date.timestamp())
        to_ts = int(to_date.timestamp())

        total_batches = 0
        written = 0
        skipped = 0
        empty = 0
        processed = 0

        for start in range(0, len(hashes), self._batch_size):
            total_batches += 1
            batch_number = total_batches
            if await self._datasets.exists(token_address, batch_number):
                self._logger.info("Skipping batch %s (already processed)", batch_number)
                skipped += 1
                continue

            batch = hashes[start: start + self._batch_size]
            self._logger.info("Processing batch %s (%s txs)", batch_number, len(batch))
            trades = await self._pipeline.enrich(
                batch, concurrency=self._concurrency, token_address=token_address, historical=True
            )
            processed += len(trades)

            windows = [
                w for w in self._aggregator.aggregate(trades, MINUTE_SECONDS, from_ts, to_ts) if not w.is_empty
            ]
            if not windows:
                # nothing saved, so the next run retries this batch
                self._logger.warning("Batch %s produced no valid transactions, not saved", batch_number)
                empty += 1
                continue

            dataset = DatasetEntity(
                token_address=token_address,
                batch_number=batch_number,
                window_seconds=MINUTE_SECONDS,
                windows=windows,
            )
            location = await self._datasets.save(dataset)
            written += 1
            self._logger.info("Batch %s saved: %s (%s windows)", batch_number, location, len(windows))

        self._logger.info(
            "Processed %s valid transactions across %s batches for %s", processed, total_batches, token_address
        )
        return DatasetExportSummary(
            token_address=token_address,
            total_identifiers=len(hashes),
            total_batches=total_batches,
            written_batches=written,
            skipped_batches=skipped,
            empty_batches=empty,
            total_processed=processed,
        )

    async def _load_hashes(self, token_address: str, from_date: datetime, to_date: datetime) -> List[str]:
        if self._hashes_source:
            return await self._datasets.read_transaction_hashes(self._hashes_source)
        return await self._collector.collect_range(token_address, from_date, to_date)
