from __future__ import annotations

from pydantic import BaseModel

from core.domain.entities.dataset_entity import DatasetExportSummary


class DatasetExportOutDTO(BaseModel):
    """
    Summary of a dataset generation run.
    """

    token_address: str
    total_identifiers: int
    total_batches: int
    written_batches: int
    skipped_batches: int
    empty_batches: int = 0
    total_processed: int

    @classmethod
    def from_entity(cls, summary: DatasetExportSummary) -> "DatasetExportOutDTO":
        return cls.model_validate(summary.model_dump())
