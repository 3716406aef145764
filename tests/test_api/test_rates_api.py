from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_rate_service
from api.main import app
from domain.exceptions.rates import InvalidCurrencyError, ProviderError
from domain.models.rates import (
    AvailablePaths,
    AverageRate,
    CacheStats,
    GraphPathfindingResult,
    PathResult,
    RateHistory,
    RateHistoryEntry,
    RateTrend,
    TrendPoint,
)

OBSERVED = datetime(2025, 11, 5, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def btc_usd():
    return GraphPathfindingResult(
        from_currency="BTC",
        to_currency="USD",
        rate=30000.0,
        timestamp=OBSERVED,
        source="graph-inference",
        path=["BTC", "ETH", "USDT", "USD"],
        hops=3,
        is_inferred=True,
    )


@pytest.fixture
def mock_rate_service(btc_usd):
    service = MagicMock()
    service.get_latest_rate = AsyncMock(return_value=btc_usd)
    service.get_rate_at_date = AsyncMock(return_value=btc_usd)
    service.get_available_paths = AsyncMock(return_value=AvailablePaths(
        from_currency="USD",
        to_currency="CHF",
        paths=[
            PathResult(path=["USD", "CHF"], total_rate=0.88, hops=1, edges=[]),
            PathResult(path=["USD", "EUR", "CHF"], total_rate=0.855, hops=2, edges=[]),
        ],
    ))
    service.get_rate_history = AsyncMock(return_value=RateHistory(rates=[
        RateHistoryEntry(
            from_currency="USD",
            to_currency="EUR",
            rate=0.92,
            date=OBSERVED,
            fetched_at=OBSERVED,
            provider_id="fixerio",
        )
    ]))
    service.get_average_rate = AsyncMock(return_value=AverageRate(
        average_rate=0.91, min_rate=0.9, max_rate=0.92, sample_count=3
    ))
    service.get_rate_trend = AsyncMock(return_value=RateTrend(
        min_rate=0.9,
        max_rate=0.92,
        avg_rate=0.91,
        trend="up",
        change_percent=2.22,
        history=[TrendPoint(date="2025-11-04", rate=0.9), TrendPoint(date="2025-11-05", rate=0.92)],
    ))
    service.get_cache_stats = MagicMock(return_value=CacheStats(size=1, keys=["2025-11-05"]))
    service.clear_cache = MagicMock()
    return service


@pytest.fixture
def client(mock_rate_service):
    app.dependency_overrides[get_rate_service] = lambda: mock_rate_service
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    app.dependency_overrides.clear()


def test_latest_rate_success(client, mock_rate_service):
    response = client.get("/api/rates/latest", params={"from": "BTC", "to": "USD"})

    assert response.status_code == 200
    data = response.json()
    assert data["from_currency"] == "BTC"
    assert data["to_currency"] == "USD"
    assert data["rate"] == 30000.0
    assert data["path"] == ["BTC", "ETH", "USDT", "USD"]
    assert data["hops"] == 3
    assert data["is_inferred"] is True
    assert data["source"] == "graph-inference"
    mock_rate_service.get_latest_rate.assert_awaited_once_with("BTC", "USD")


def test_latest_rate_not_found(client, mock_rate_service):
    mock_rate_service.get_latest_rate.return_value = None

    response = client.get("/api/rates/latest", params={"from": "xau", "to": "xag"})

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert "XAU/XAG" in detail
    assert "configure a rate provider" in detail


def test_latest_rate_requires_both_currencies(client):
    response = client.get("/api/rates/latest", params={"from": "BTC"})

    assert response.status_code == 422


def test_invalid_currency_is_bad_request(client, mock_rate_service):
    mock_rate_service.get_latest_rate.side_effect = InvalidCurrencyError("Currency code must not be empty")

    response = client.get("/api/rates/latest", params={"from": "  ", "to": "USD"})

    assert response.status_code == 400


def test_provider_error_is_service_unavailable(client, mock_rate_service):
    mock_rate_service.get_latest_rate.side_effect = ProviderError("upstream down")

    response = client.get("/api/rates/latest", params={"from": "BTC", "to": "USD"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Exchange rate service unavailable"


def test_unexpected_error_is_internal_error(client, mock_rate_service):
    mock_rate_service.get_latest_rate.side_effect = RuntimeError("boom")

    response = client.get("/api/rates/latest", params={"from": "BTC", "to": "USD"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_rate_at_date(client, mock_rate_service):
    response = client.get(
        "/api/rates/at", params={"from": "BTC", "to": "USD", "date": "2025-10-01T00:00:00Z"}
    )

    assert response.status_code == 200
    args = mock_rate_service.get_rate_at_date.await_args[0]
    assert args[:2] == ("BTC", "USD")
    assert args[2] == datetime(2025, 10, 1, tzinfo=UTC)


def test_rate_at_date_requires_date(client):
    response = client.get("/api/rates/at", params={"from": "BTC", "to": "USD"})

    assert response.status_code == 422


def test_history(client, mock_rate_service):
    response = client.get(
        "/api/rates/history", params={"from": "USD", "to": "EUR", "limit": 10}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["rates"][0]["rate"] == 0.92
    assert data["rates"][0]["provider_id"] == "fixerio"
    assert mock_rate_service.get_rate_history.await_args.kwargs["limit"] == 10


def test_history_limit_is_bounded(client):
    response = client.get(
        "/api/rates/history", params={"from": "USD", "to": "EUR", "limit": 0}
    )

    assert response.status_code == 422


def test_average(client):
    response = client.get(
        "/api/rates/average",
        params={
            "from": "USD",
            "to": "EUR",
            "from_date": "2025-11-03T00:00:00Z",
            "to_date": "2025-11-05T00:00:00Z",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "average_rate": 0.91,
        "min_rate": 0.9,
        "max_rate": 0.92,
        "sample_count": 3,
    }


def test_trend(client, mock_rate_service):
    response = client.get("/api/rates/trend", params={"from": "USD", "to": "EUR", "days": 7})

    assert response.status_code == 200
    data = response.json()
    assert data["trend"] == "up"
    assert data["change_percent"] == 2.22
    assert [point["date"] for point in data["history"]] == ["2025-11-04", "2025-11-05"]
    mock_rate_service.get_rate_trend.assert_awaited_once_with("USD", "EUR", 7)


def test_paths(client):
    response = client.get("/api/rates/paths", params={"from": "USD", "to": "CHF"})

    assert response.status_code == 200
    data = response.json()
    assert data["total_paths"] == 2
    assert data["paths"][0] == {"path": ["USD", "CHF"], "total_rate": 0.88, "hops": 1}


def test_cache_stats(client):
    response = client.get("/api/rates/cache/stats")

    assert response.status_code == 200
    assert response.json() == {"size": 1, "keys": ["2025-11-05"]}


def test_clear_cache(client, mock_rate_service):
    response = client.delete("/api/rates/cache")

    assert response.status_code == 204
    mock_rate_service.clear_cache.assert_called_once()
