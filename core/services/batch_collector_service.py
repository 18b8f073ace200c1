from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from core.domain.entities.price_sample_entity import HOUR_SECONDS
from core.domain.entities.transfer_event_entity import TransferPageEntity
from core.repositories.transfer_event_repository import TransferEventRepository


class BatchCollectorService:
    """
    Collects candidate transaction hashes for a token from the transfer indexer.

    Two modes:
    - recent: page newest-first, stop after `max_batches` pages or as soon as a page
      reaches past the last hour.
    - range: page through [from_date, to_date] until the indexer runs dry.

    Hashes are deduplicated across pages, first occurrence wins.
    Indexer failures propagate and abort the run.
    """

    def __init__(
        self,
        *,
        transfer_repository: TransferEventRepository,
        page_size: int = 100,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transfers = transfer_repository
        self._page_size = int(page_size)
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def collect_recent(self, token_address: str, *, max_batches: int) -> List[str]:
        recent_cutoff = int(self._clock()) - HOUR_SECONDS
        hashes: Dict[str, None] = {}
        cursor: Optional[str] = None
        batches = 0

        while batches < max_batches:
            page = await self._transfers.fetch_page(token_address, limit=self._page_size, cursor=cursor)
            batches += 1
            self._add(hashes, page)

            if not page.events or page.cursor is None:
                break
            oldest = page.events[-1].block_timestamp
            if oldest is not None and oldest < recent_cutoff:
                break
            if page.cursor == cursor:
                self._logger.warning("Transfer cursor did not advance for %s", token_address)
                break
            cursor = page.cursor

        self._logger.info("Collected %s recent hashes for %s in %s page(s)", len(hashes), token_address, batches)
        return list(hashes)

    async def collect_range(self, token_address: str, from_date: datetime, to_date: datetime) -> List[str]:
        hashes: Dict[str, None] = {}
        cursor: Optional[str] = None
        pages = 0

        while True:
            page = await self._transfers.fetch_page(
                token_address,
                limit=self._page_size,
                cursor=cursor,
                from_date=from_date,
                to_date=to_date,
            )
            pages += 1
            self._add(hashes, page)

            if len(page.events) < self._page_size or page.cursor is None:
                break
            if page.cursor == cursor:
                self._logger.warning("Transfer cursor did not advance for %s", token_address)
                break
            cursor = page.cursor

        self._logger.info(
            "Collected %s hashes for %s between %s and %s in %s page(s)",
            len(hashes),
            token_address,
            from_date.isoformat(),
            to_date.isoformat(),
            pages,
        )
        return list(hashes)

    @staticmethod
    def _add(hashes: Dict[str, None], page: TransferPageEntity) -> None:
        for event in page.events:
            if event.transaction_hash:
                hashes.setdefault(event.transaction_hash.lower(), None)
