import pytest
from fastapi.testclient import TestClient

from adapters.entry.http.deps import (
    get_dataset_use_case,
    get_historical_summary_use_case,
    get_hourly_summary_use_case,
)
from core.domain.entities.dataset_entity import DatasetExportSummary
from core.domain.entities.time_window_entity import TimeWindowEntity
from core.domain.errors import UpstreamServiceError
from core.usecases.generate_historical_summary_use_case import paginate
from main import app

ADDRESS = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
CHECKSUM = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

WINDOW = TimeWindowEntity(
    window_start=1_699_999_200,
    window_end=1_700_002_800,
    total_txns=1,
    buy_count=1,
    active_address_count=1,
    token_volume=10.0,
    token_volume_usd=25.5,
    first_token_price=2.55,
    latest_token_price=2.55,
    avg_token_price=2.55,
    eth_price=2000.0,
    start_block=1,
    end_block=1,
    transaction_hashes=["0xa"],
)


class StubUseCase:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def execute(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stubs():
    hourly = StubUseCase([WINDOW])
    historical = StubUseCase(paginate([WINDOW], 1, 20))
    dataset = StubUseCase(
        DatasetExportSummary(
            token_address=CHECKSUM,
            total_identifiers=3,
            total_batches=2,
            written_batches=1,
            skipped_batches=1,
            total_processed=2,
        )
    )
    app.dependency_overrides[get_hourly_summary_use_case] = lambda: hourly
    app.dependency_overrides[get_historical_summary_use_case] = lambda: historical
    app.dependency_overrides[get_dataset_use_case] = lambda: dataset
    yield {"hourly": hourly, "historical": historical, "dataset": dataset}
    app.dependency_overrides.clear()


@pytest.fixture
def client(stubs):
    return TestClient(app)


def test_hourly_summary(client, stubs):
    res = client.get("/transactions/summary", params={"address": ADDRESS})

    assert res.status_code == 200
    body = res.json()
    assert body["error"] is None
    (item,) = body["data"]
    assert item["window_start_utc"] == "2023-11-14 22:00:00"
    assert item["token_volume_usd"] == "25.50"
    assert item["eth_price"] == "2000.00"
    assert item["btc_price"] == "N/A"
    assert stubs["hourly"].calls == [((CHECKSUM,), {})]


@pytest.mark.parametrize("params", [{}, {"address": "0x123"}])
def test_invalid_address(client, stubs, params):
    res = client.get("/transactions/summary", params=params)

    assert res.status_code == 400
    assert res.json()["error"] == "INVALID_INPUT"
    assert res.json()["data"] is None
    assert stubs["hourly"].calls == []


def test_historical_summary(client, stubs):
    res = client.get(
        "/transactions/historical/summary",
        params={"address": ADDRESS, "fromDate": "2023-11-14", "toDate": "2023-11-15", "page": 1, "limit": 20},
    )

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["total_items"] == 1
    assert data["current_page"] == 1
    assert data["items"][0]["transaction_hashes"] == ["0xa"]

    (_, kwargs), = stubs["historical"].calls
    assert kwargs["token_address"] == CHECKSUM
    assert kwargs["from_date"].isoformat() == "2023-11-14T00:00:00+00:00"


@pytest.mark.parametrize(
    "params",
    [
        {"fromDate": "2023-11-15", "toDate": "2023-11-14"},
        {"fromDate": "2023-11-14"},
        {"fromDate": "2023-11-14", "toDate": "2023-11-15", "limit": 0},
    ],
)
def test_historical_rejects_bad_input(client, stubs, params):
    res = client.get("/transactions/historical/summary", params={"address": ADDRESS, **params})

    assert res.status_code == 400
    assert stubs["historical"].calls == []


def test_upstream_failure_maps_to_502(client, stubs):
    stubs["hourly"].error = UpstreamServiceError("moralis", "GET /erc20 HTTP 500", status_code=500)

    res = client.get("/transactions/summary", params={"address": ADDRESS})

    assert res.status_code == 502
    assert res.json() == {"data": None, "message": "moralis: GET /erc20 HTTP 500", "error": "UPSTREAM_ERROR"}


def test_dataset_generate(client, stubs):
    res = client.get(
        "/dataset/generate", params={"address": ADDRESS, "fromDate": "2023-11-14", "toDate": "2023-11-15"}
    )

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["written_batches"] == 1
    assert data["skipped_batches"] == 1


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
