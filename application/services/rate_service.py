import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta

from application.services.graph_builder import GraphBuilder
from application.services.graph_cache import GraphCache
from domain.graph.edges import calculate_confidence
from domain.graph.pathfinder import (
    DEFAULT_ALL_PATHS_MAX_HOPS,
    DEFAULT_MAX_HOPS,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MIN_CONFIDENCE,
    find_all_paths,
    find_best_path,
)
from domain.models.rates import (
    AvailablePaths,
    AverageRate,
    CacheStats,
    GraphPathfindingResult,
    RateEdge,
    RateGraph,
    RateHistory,
    RateHistoryEntry,
    RateTrend,
    TrendPoint,
    normalize_code,
)
from domain.utils.time import as_utc, iter_days, utc_now
from infrastructure.persistence.repositories.rates import ExchangeRateRepository, ProviderRepository

logger = logging.getLogger(__name__)

IDENTITY_SOURCE = 'identity'
INFERRED_SOURCE = 'graph-inference'
DEFAULT_HISTORY_DAYS = 30
DEFAULT_HISTORY_LIMIT = 100
TREND_THRESHOLD_PERCENT = 1.0


class RateService:
    """
    Query surface over the rate graph: point rates, alternative paths and
    day-by-day analytics. Every analytic is a sequence of get_rate calls, one
    per day, which normally hit the per-day graph cache.
    """

    def __init__(
        self,
        rate_repository: ExchangeRateRepository,
        provider_repository: ProviderRepository,
        graph_builder: GraphBuilder,
        graph_cache: GraphCache,
        max_hops: int = DEFAULT_MAX_HOPS,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        all_paths_max_hops: int = DEFAULT_ALL_PATHS_MAX_HOPS,
        all_paths_max_results: int = DEFAULT_MAX_RESULTS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.rate_repository = rate_repository
        self.provider_repository = provider_repository
        self.graph_builder = graph_builder
        self.graph_cache = graph_cache
        self.max_hops = max_hops
        self.min_confidence = min_confidence
        self.all_paths_max_hops = all_paths_max_hops
        self.all_paths_max_results = all_paths_max_results
        self.clock = clock

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        date: datetime | None = None,
        provider_id: str | None = None,
    ) -> GraphPathfindingResult | None:
        from_currency = normalize_code(from_currency)
        to_currency = normalize_code(to_currency)

        if from_currency == to_currency:
            return GraphPathfindingResult(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=1.0,
                timestamp=self.clock(),
                source=IDENTITY_SOURCE,
                path=[from_currency],
                hops=0,
                is_inferred=False,
            )

        on = as_utc(date or self.clock())

        direct = await self._get_direct_edge(from_currency, to_currency, on, provider_id)
        if direct is not None:
            return GraphPathfindingResult(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=direct.rate,
                timestamp=direct.timestamp,
                source=direct.provider_name,
                path=[from_currency, to_currency],
                hops=1,
                is_inferred=False,
            )

        graph = await self.get_graph(on, provider_id)
        best = find_best_path(
            graph,
            from_currency,
            to_currency,
            max_hops=self.max_hops,
            min_confidence=self.min_confidence,
        )
        if best is None:
            logger.debug(f'No conversion path {from_currency}->{to_currency} on {on.date().isoformat()}')
            return None

        if best.hops == 1:
            edge = best.edges[0]
            return GraphPathfindingResult(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=best.total_rate,
                timestamp=edge.timestamp,
                source=edge.provider_name,
                path=best.path,
                hops=1,
                is_inferred=False,
            )

        return GraphPathfindingResult(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=best.total_rate,
            timestamp=self.clock(),
            source=INFERRED_SOURCE,
            path=best.path,
            hops=best.hops,
            is_inferred=True,
        )

    async def get_latest_rate(self, from_currency: str, to_currency: str) -> GraphPathfindingResult | None:
        return await self.get_rate(from_currency, to_currency)

    async def get_rate_at_date(
        self, from_currency: str, to_currency: str, date: datetime
    ) -> GraphPathfindingResult | None:
        return await self.get_rate(from_currency, to_currency, date=date)

    async def get_cross_rate(self, from_currency: str, to_currency: str) -> float | None:
        result = await self.get_rate(from_currency, to_currency)
        return result.rate if result else None

    async def get_graph(self, on: datetime, provider_id: str | None = None) -> RateGraph:
        key = self.graph_cache.make_key(on, provider_id)
        return await self.graph_cache.get_or_build(
            key, lambda: self.graph_builder.build(on, provider_id)
        )

    async def get_available_paths(
        self, from_currency: str, to_currency: str, date: datetime | None = None
    ) -> AvailablePaths:
        from_currency = normalize_code(from_currency)
        to_currency = normalize_code(to_currency)

        try:
            graph = await self.get_graph(as_utc(date or self.clock()))
            paths = find_all_paths(
                graph,
                from_currency,
                to_currency,
                max_hops=self.all_paths_max_hops,
                max_results=self.all_paths_max_results,
            )
        except Exception as e:
            logger.error(f'Failed to find paths from {from_currency} to {to_currency}: {e}')
            paths = []

        return AvailablePaths(from_currency=from_currency, to_currency=to_currency, paths=paths)

    async def get_rate_history(
        self,
        from_currency: str,
        to_currency: str,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> RateHistory:
        end = to_date or self.clock()
        start = from_date or end - timedelta(days=DEFAULT_HISTORY_DAYS)

        rates = []
        for day in iter_days(start, end, limit=limit):
            result = await self.get_rate(from_currency, to_currency, date=day)
            if result is None:
                continue
            rates.append(
                RateHistoryEntry(
                    from_currency=result.from_currency,
                    to_currency=result.to_currency,
                    rate=result.rate,
                    date=day,
                    fetched_at=result.timestamp,
                    provider_id=result.source,
                )
            )
        return RateHistory(rates=rates)

    async def get_average_rate(
        self, from_currency: str, to_currency: str, from_date: datetime, to_date: datetime
    ) -> AverageRate:
        rates = []
        for day in iter_days(from_date, to_date):
            result = await self.get_rate(from_currency, to_currency, date=day)
            if result and result.rate > 0:
                rates.append(result.rate)

        if not rates:
            return AverageRate(average_rate=0.0, min_rate=0.0, max_rate=0.0, sample_count=0)

        return AverageRate(
            average_rate=round(sum(rates) / len(rates), 8),
            min_rate=round(min(rates), 8),
            max_rate=round(max(rates), 8),
            sample_count=len(rates),
        )

    async def get_rate_trend(
        self, from_currency: str, to_currency: str, days: int = DEFAULT_HISTORY_DAYS
    ) -> RateTrend:
        end = self.clock()
        start = end - timedelta(days=max(days, 1) - 1)
        history = await self.get_rate_history(
            from_currency, to_currency, from_date=start, to_date=end, limit=days
        )

        if not history.rates:
            return RateTrend(
                min_rate=0.0, max_rate=0.0, avg_rate=0.0, trend='stable', change_percent=0.0, history=[]
            )

        ordered = sorted(history.rates, key=lambda entry: entry.date)
        values = [entry.rate for entry in ordered]
        first, last = values[0], values[-1]
        change_percent = (last - first) / first * 100 if first else 0.0

        if change_percent > TREND_THRESHOLD_PERCENT:
            trend = 'up'
        elif change_percent < -TREND_THRESHOLD_PERCENT:
            trend = 'down'
        else:
            trend = 'stable'

        return RateTrend(
            min_rate=round(min(values), 8),
            max_rate=round(max(values), 8),
            avg_rate=round(sum(values) / len(values), 8),
            trend=trend,
            change_percent=round(change_percent, 2),
            history=[TrendPoint(date=entry.date.date().isoformat(), rate=entry.rate) for entry in ordered],
        )

    def clear_cache(self) -> None:
        self.graph_cache.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.graph_cache.stats()

    async def _get_direct_edge(
        self, from_currency: str, to_currency: str, on: datetime, provider_id: str | None
    ) -> RateEdge | None:
        stored = await self.rate_repository.find(from_currency, to_currency, on.date())
        if stored is None:
            return None
        if provider_id and stored.provider_id != provider_id:
            return None

        rate = float(stored.rate)
        if not math.isfinite(rate) or rate <= 0:
            return None

        provider = await self.provider_repository.get(stored.provider_id) if stored.provider_id else None
        return RateEdge(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            provider_id=stored.provider_id,
            provider_name=provider.name if provider else 'unknown',
            timestamp=stored.fetched_at,
            confidence=calculate_confidence(stored.fetched_at, self.clock()),
        )
