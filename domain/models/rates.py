import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from domain.exceptions.rates import InvalidCurrencyError, InvalidRateError


def normalize_code(code: str) -> str:
    """Currency codes are only case-normalised, never validated against a list."""
    if code is None or not str(code).strip():
        raise InvalidCurrencyError('Currency code must not be empty')
    return str(code).strip().upper()


class ProviderType(str, Enum):
    PLUGIN = 'plugin'
    REST_API = 'rest_api'


@dataclass(frozen=True)
class RateEdge:
    """One directed conversion fact: 1 unit of from_currency buys `rate` to_currency."""

    from_currency: str
    to_currency: str
    rate: float
    provider_id: str | None
    provider_name: str
    timestamp: datetime
    confidence: float

    def __post_init__(self):
        if not math.isfinite(self.rate) or self.rate <= 0:
            raise InvalidRateError(
                f'Rate {self.from_currency}->{self.to_currency} must be positive, got {self.rate}'
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidRateError(f'Confidence must be within [0, 1], got {self.confidence}')


@dataclass
class RateGraph:
    nodes: set[str] = field(default_factory=set)
    edges: dict[str, dict[str, RateEdge]] = field(default_factory=dict)

    def get_edge(self, from_currency: str, to_currency: str) -> RateEdge | None:
        return self.edges.get(from_currency, {}).get(to_currency)

    def neighbours(self, currency: str) -> dict[str, RateEdge]:
        return self.edges.get(currency, {})

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.edges.values())


@dataclass(frozen=True)
class CachedRate:
    """A persisted rate row as returned by the rate store."""

    from_currency: str
    to_currency: str
    rate: Decimal
    date: date
    fetched_at: datetime
    provider_id: str | None


@dataclass(frozen=True)
class ProviderInfo:
    id: str
    name: str
    type: ProviderType
    is_active: bool = True
    supported_currencies: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PathResult:
    path: list[str]
    total_rate: float
    hops: int
    edges: list[RateEdge]


@dataclass(frozen=True)
class GraphPathfindingResult:
    from_currency: str
    to_currency: str
    rate: float
    timestamp: datetime
    source: str
    path: list[str]
    hops: int
    is_inferred: bool


@dataclass(frozen=True)
class AvailablePaths:
    from_currency: str
    to_currency: str
    paths: list[PathResult]

    @property
    def total_paths(self) -> int:
        return len(self.paths)


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    from_currency: str
    to_currency: str
    converted_amount: Decimal
    rate: float
    date: datetime
    path: list[str] | None
    hops: int | None
    is_inferred: bool
    rate_found: bool


@dataclass(frozen=True)
class RateHistoryEntry:
    from_currency: str
    to_currency: str
    rate: float
    date: datetime
    fetched_at: datetime
    provider_id: str


@dataclass(frozen=True)
class RateHistory:
    rates: list[RateHistoryEntry]

    @property
    def total(self) -> int:
        return len(self.rates)


@dataclass(frozen=True)
class AverageRate:
    average_rate: float
    min_rate: float
    max_rate: float
    sample_count: int


@dataclass(frozen=True)
class TrendPoint:
    date: str
    rate: float


@dataclass(frozen=True)
class RateTrend:
    min_rate: float
    max_rate: float
    avg_rate: float
    trend: Literal['up', 'down', 'stable']
    change_percent: float
    history: list[TrendPoint]


@dataclass(frozen=True)
class CacheStats:
    size: int
    keys: list[str]
