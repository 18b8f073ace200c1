from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from core.domain.entities.base_entity import AnalyticsEntity


class LogEntryEntity(AnalyticsEntity):
    """
    A single log entry of a transaction receipt.

    topics/data are kept as lowercase 0x-prefixed hex strings, exactly as the node returns them.
    """

    address: str
    topics: List[str] = Field(default_factory=list)
    data: str = "0x"
    log_index: Optional[int] = None

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0].lower() if self.topics else None

    @property
    def has_data(self) -> bool:
        return bool(self.data) and self.data not in ("0x", "0x0")


class ReceiptEntity(AnalyticsEntity):
    """
    Immutable on-chain execution record of one transaction.
    """

    transaction_hash: str
    status: bool
    block_number: int
    from_address: str
    to_address: Optional[str] = None
    logs: List[LogEntryEntity] = Field(default_factory=list)
