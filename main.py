import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.entry.http.dataset_router import router as dataset_router
from adapters.entry.http.transactions_router import router as transactions_router
from config.settings import settings
from core.domain.errors import (
    DataNotFoundError,
    InvalidInputError,
    TokenAnalyticsError,
    UpstreamServiceError,
)
from workers.analytics_supervisor import AnalyticsSupervisor


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = AnalyticsSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logging.getLogger(__name__).info("Starting api-token-analytics (lifespan startup)...")

    await supervisor.start()
    app.state.hourly_summary_use_case = supervisor.hourly_summary_use_case
    app.state.historical_summary_use_case = supervisor.historical_summary_use_case
    app.state.dataset_use_case = supervisor.dataset_use_case

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down api-token-analytics (lifespan shutdown)...")
        await supervisor.stop()


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(transactions_router)
app.include_router(dataset_router)


def _envelope(status_code: int, message: str, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": None, "message": message, "error": error})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return _envelope(400, str(exc), "INVALID_INPUT")


@app.exception_handler(DataNotFoundError)
async def not_found_handler(request: Request, exc: DataNotFoundError) -> JSONResponse:
    return _envelope(404, str(exc), "NOT_FOUND")


@app.exception_handler(UpstreamServiceError)
async def upstream_handler(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    logging.getLogger(__name__).error("Upstream failure on %s: %s", request.url.path, exc)
    return _envelope(502, str(exc), "UPSTREAM_ERROR")


@app.exception_handler(TokenAnalyticsError)
async def analytics_error_handler(request: Request, exc: TokenAnalyticsError) -> JSONResponse:
    logging.getLogger(__name__).exception("Run failed on %s: %s", request.url.path, exc)
    return _envelope(500, str(exc), "INTERNAL_ERROR")


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
