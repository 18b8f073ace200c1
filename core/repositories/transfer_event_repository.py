from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from core.domain.entities.transfer_event_entity import TransferPageEntity


class TransferEventRepository(ABC):
    """Abstraction over a token-transfer indexing service (newest first, cursor pagination)."""

    @abstractmethod
    async def fetch_page(
        self,
        token_address: str,
        *,
        limit: int,
        cursor: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> TransferPageEntity: ...
