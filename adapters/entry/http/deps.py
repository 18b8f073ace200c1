from __future__ import annotations

from fastapi import Request

from core.usecases.generate_dataset_use_case import GenerateDatasetUseCase
from core.usecases.generate_historical_summary_use_case import GenerateHistoricalSummaryUseCase
from core.usecases.generate_hourly_summary_use_case import GenerateHourlySummaryUseCase


def get_hourly_summary_use_case(request: Request) -> GenerateHourlySummaryUseCase:
    return request.app.state.hourly_summary_use_case


def get_historical_summary_use_case(request: Request) -> GenerateHistoricalSummaryUseCase:
    return request.app.state.historical_summary_use_case


def get_dataset_use_case(request: Request) -> GenerateDatasetUseCase:
    return request.app.state.dataset_use_case
