from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from core.domain.entities.classified_transaction_entity import ClassifiedTransactionEntity
from core.domain.errors import UpstreamServiceError
from core.repositories.chain_repository import ChainRepository
from core.services.swap_log_classifier_service import SwapLogClassifierService


class EnrichmentPipelineService:
    """
    Bounded-concurrency driver: transaction hash -> receipt -> classified trade.

    A fixed pool of workers pulls the next index from a shared cursor and writes the
    result into a pre-sized slot list, so output follows input order. A failing item
    leaves its slot empty and never cancels sibling work.

    UpstreamServiceError is the exception: the chain node is unusable, so the run
    aborts (remaining workers are cancelled) instead of returning a partial result.
    """

    def __init__(
        self,
        *,
        chain_repository: ChainRepository,
        classifier: SwapLogClassifierService,
        logger: logging.Logger | None = None,
    ) -> None:
        self._chain = chain_repository
        self._classifier = classifier
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def enrich(
        self,
        tx_hashes: Sequence[str],
        *,
        concurrency: int,
        token_address: Optional[str] = None,
        historical: bool = False,
    ) -> List[ClassifiedTransactionEntity]:
        """
        Classify each hash; with `token_address`, only trades of that token are kept.
        """
        total = len(tx_hashes)
        if total == 0:
            return []

        slots: List[Optional[ClassifiedTransactionEntity]] = [None] * total
        cursor = 0

        async def worker() -> None:
            nonlocal cursor
            while cursor < total:
                index = cursor
                cursor += 1
                slots[index] = await self._process(tx_hashes[index], token_address, historical)

        workers = max(1, min(int(concurrency), total))
        tasks = [asyncio.create_task(worker()) for _ in range(workers)]
        try:
            await asyncio.gather(*tasks)
        except UpstreamServiceError as exc:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._logger.error("Enrichment aborted after %s/%s items: %s", min(cursor, total), total, exc)
            raise

        results = [trade for trade in slots if trade is not None]
        self._logger.info("Enriched %s/%s transactions (workers=%s)", len(results), total, workers)
        return results

    async def _process(
        self, tx_hash: str, token_address: Optional[str], historical: bool
    ) -> Optional[ClassifiedTransactionEntity]:
        try:
            receipt = await self._chain.get_receipt(tx_hash)
            if receipt is None:
                self._logger.debug("No receipt for tx=%s", tx_hash)
                return None
            return await self._classifier.classify(receipt, token_address=token_address, historical=historical)
        except UpstreamServiceError:
            raise
        except Exception as exc:
            self._logger.warning("Skipping tx=%s: %s", tx_hash, exc)
            return None
