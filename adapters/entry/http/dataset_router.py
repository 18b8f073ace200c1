from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.services.input_validation_service import InputValidationService
from core.usecases.generate_dataset_use_case import GenerateDatasetUseCase

from .deps import get_dataset_use_case
from .dtos.dataset_dtos import DatasetExportOutDTO
from .dtos.window_summary_dtos import ResponseEnvelopeDTO

router = APIRouter(prefix="/dataset", tags=["dataset"])


@router.get("/generate", response_model=ResponseEnvelopeDTO)
async def generate_dataset(
    address: Optional[str] = Query(None, description="Token contract address"),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    use_case: GenerateDatasetUseCase = Depends(get_dataset_use_case),
) -> ResponseEnvelopeDTO:
    """
    Export per-minute windows as CSV batches; existing batches are skipped.
    """
    token = InputValidationService.validate_address(address)
    start, end = InputValidationService.parse_date_range(from_date, to_date)

    summary = await use_case.execute(token_address=token, from_date=start, to_date=end)
    return ResponseEnvelopeDTO(
        data=DatasetExportOutDTO.from_entity(summary).model_dump(),
        message="Dataset generation completed.",
    )
