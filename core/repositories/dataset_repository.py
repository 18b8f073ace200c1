from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from core.domain.entities.dataset_entity import DatasetEntity


class DatasetRepository(ABC):
    """
    Persistence boundary for exported datasets.
    """

    @abstractmethod
    async def exists(self, token_address: str, batch_number: int) -> bool:
        """
        Whether the batch output was already written.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, dataset: DatasetEntity) -> str:
        """
        Persist one batch and return its location.
        """
        raise NotImplementedError

    @abstractmethod
    async def read_transaction_hashes(self, source: str) -> List[str]:
        """
        Read unique transaction hashes from an input file, in file order.
        """
        raise NotImplementedError
