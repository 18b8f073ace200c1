from __future__ import annotations

from typing import List

from pydantic import Field

from core.domain.entities.base_entity import AnalyticsEntity
from core.domain.entities.time_window_entity import TimeWindowEntity


class DatasetEntity(AnalyticsEntity):
    """
    Ordered windows (most recent first) produced by one export batch.
    """

    token_address: str
    batch_number: int
    window_seconds: int
    windows: List[TimeWindowEntity] = Field(default_factory=list)


class DatasetExportSummary(AnalyticsEntity):
    """
    Outcome of a dataset generation run.
    """

    token_address: str
    total_identifiers: int
    total_batches: int
    written_batches: int
    skipped_batches: int
    empty_batches: int = 0
    total_processed: int
