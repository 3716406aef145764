"""
Shared fixtures for the rate graph tests.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

import pytest

from domain.models.rates import RateEdge, RateGraph
from domain.graph.edges import add_edge

NOW = datetime(2025, 11, 5, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRateSource:
    """In-memory rate source keyed by base currency, recording every call."""

    def __init__(self, quotes: dict[str, dict[str, float | str]] | None = None, error: Exception | None = None):
        self.quotes = quotes or {}
        self.error = error
        self.calls: list[tuple[list[str], str]] = []

    async def fetch_rates(self, currencies: Iterable[str], base: str) -> dict[str, float | str]:
        currencies = list(currencies)
        self.calls.append((currencies, base))
        if self.error:
            raise self.error
        quotes = self.quotes.get(base, {})
        return {
            key: value
            for key, value in quotes.items()
            if any(code in key.split('/') for code in currencies)
        }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_edge():
    def _make_edge(
        from_currency: str,
        to_currency: str,
        rate: float,
        confidence: float = 0.9,
        provider_name: str = 'test',
        provider_id: str | None = 'test-provider',
        timestamp: datetime = NOW,
    ) -> RateEdge:
        return RateEdge(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            provider_id=provider_id,
            provider_name=provider_name,
            timestamp=timestamp,
            confidence=confidence,
        )

    return _make_edge


@pytest.fixture
def make_graph(make_edge):
    def _make_graph(*edges: tuple) -> RateGraph:
        graph = RateGraph()
        for edge_args in edges:
            add_edge(graph, make_edge(*edge_args))
        return graph

    return _make_graph


@pytest.fixture
def crypto_graph(make_graph):
    """BTC reaches USD only through ETH and USDT."""
    return make_graph(
        ('BTC', 'ETH', 15.0, 0.9),
        ('ETH', 'USDT', 2000.0, 0.9),
        ('USDT', 'USD', 1.0, 0.9),
    )


@pytest.fixture
def rate_source_factory():
    return FakeRateSource
