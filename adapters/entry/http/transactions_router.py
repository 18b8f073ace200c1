from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.services.input_validation_service import InputValidationService
from core.usecases.generate_historical_summary_use_case import GenerateHistoricalSummaryUseCase
from core.usecases.generate_hourly_summary_use_case import GenerateHourlySummaryUseCase

from .deps import get_historical_summary_use_case, get_hourly_summary_use_case
from .dtos.window_summary_dtos import HistoricalSummaryPageDTO, ResponseEnvelopeDTO, WindowSummaryOutDTO

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("/summary", response_model=ResponseEnvelopeDTO)
async def get_hourly_summary(
    address: Optional[str] = Query(None, description="Token contract address"),
    use_case: GenerateHourlySummaryUseCase = Depends(get_hourly_summary_use_case),
) -> ResponseEnvelopeDTO:
    """
    Aggregate of the most recent trading hour (a single-element list, or empty).
    """
    token = InputValidationService.validate_address(address)
    windows = await use_case.execute(token)
    return ResponseEnvelopeDTO(
        data=[WindowSummaryOutDTO.from_entity(w).model_dump() for w in windows],
        message="Token transactions data fetched successfully.",
    )


@router.get("/historical/summary", response_model=ResponseEnvelopeDTO)
async def get_historical_summary(
    address: Optional[str] = Query(None, description="Token contract address"),
    from_date: Optional[str] = Query(None, alias="fromDate", description="YYYY-MM-DD or ISO-8601"),
    to_date: Optional[str] = Query(None, alias="toDate", description="YYYY-MM-DD or ISO-8601"),
    page: int = Query(1),
    limit: int = Query(20),
    use_case: GenerateHistoricalSummaryUseCase = Depends(get_historical_summary_use_case),
) -> ResponseEnvelopeDTO:
    """
    Hourly windows across [fromDate, toDate], most recent first, paginated.
    """
    token = InputValidationService.validate_address(address)
    start, end = InputValidationService.parse_date_range(from_date, to_date)
    page, limit = InputValidationService.validate_pagination(page, limit)

    result = await use_case.execute(token_address=token, from_date=start, to_date=end, page=page, limit=limit)
    dto = HistoricalSummaryPageDTO(
        current_page=result["current_page"],
        total_pages=result["total_pages"],
        total_items=result["total_items"],
        per_page=result["per_page"],
        items=[WindowSummaryOutDTO.from_entity(w) for w in result["items"]],
    )
    return ResponseEnvelopeDTO(
        data=dto.model_dump(),
        message="Token transactions historical data fetched successfully.",
    )
