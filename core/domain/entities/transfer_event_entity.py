from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from core.domain.entities.base_entity import AnalyticsEntity


class TransferEventEntity(AnalyticsEntity):
    """
    A token transfer reported by the indexing service.

    Only the fields the collector needs are kept.
    """

    transaction_hash: str
    block_number: Optional[int] = None
    block_timestamp: Optional[int] = None  # seconds


class TransferPageEntity(AnalyticsEntity):
    """
    One page of transfer events plus the cursor to the next page (None when exhausted).
    """

    events: List[TransferEventEntity] = Field(default_factory=list)
    cursor: Optional[str] = None
