from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from core.domain.entities.time_window_entity import TimeWindowEntity


class ResponseEnvelopeDTO(BaseModel):
    """
    Envelope shared by every endpoint: exactly one of data/error is meaningful.
    """

    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None


class WindowSummaryOutDTO(BaseModel):
    """
    One time window aggregate as returned by the API.
    """

    window_start_utc: str
    window_end_utc: str
    total_txns: int
    buy_count: int
    sell_count: int
    active_address_count: int
    last_token_price: float = Field(..., description="Price of the earliest trade in the window")
    latest_token_price: float
    avg_token_price: float
    token_volume: str
    token_volume_usd: str
    eth_price: str
    btc_price: str
    start_block: Optional[int] = None
    end_block: Optional[int] = None
    transaction_hashes: List[str] = Field(default_factory=list)
    multi_swap: bool = False

    @classmethod
    def from_entity(cls, window: TimeWindowEntity) -> "WindowSummaryOutDTO":
        return cls(
            window_start_utc=window.start_utc,
            window_end_utc=window.end_utc,
            total_txns=window.total_txns,
            buy_count=window.buy_count,
            sell_count=window.sell_count,
            active_address_count=window.active_address_count,
            last_token_price=window.first_token_price,
            latest_token_price=window.latest_token_price,
            avg_token_price=window.avg_token_price,
            token_volume=f"{window.token_volume:.2f}",
            token_volume_usd=f"{window.token_volume_usd:.2f}",
            eth_price=f"{window.eth_price:.2f}" if window.eth_price else "N/A",
            btc_price=f"{window.btc_price:.2f}" if window.btc_price else "N/A",
            start_block=window.start_block,
            end_block=window.end_block,
            transaction_hashes=list(window.transaction_hashes),
            multi_swap=window.multi_swap,
        )


class HistoricalSummaryPageDTO(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    per_page: int
    items: List[WindowSummaryOutDTO] = Field(default_factory=list)
