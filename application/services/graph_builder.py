import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from datetime import datetime

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from domain.graph.edges import add_edge, calculate_confidence
from domain.models.rates import CachedRate, ProviderInfo, ProviderType, RateEdge, RateGraph, normalize_code
from domain.utils.time import as_utc, utc_now
from infrastructure.persistence.repositories.rates import ExchangeRateRepository, ProviderRepository
from infrastructure.providers.base import RateSource, RawRates, split_pair
from infrastructure.providers.registry import RateSourceRegistry

logger = logging.getLogger(__name__)

DEFAULT_ANCHOR_CURRENCIES = ('USD', 'EUR', 'GBP', 'CNY')
DEFAULT_PROVIDER_CONFIDENCE = 0.95
CACHED_PROVIDER_NAME = 'cached'


def _parse_rate(value: object) -> float | None:
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


class GraphBuilder:
    """Assembles the rate graph for one evaluation date from stored and live rates."""

    def __init__(
        self,
        rate_repository: ExchangeRateRepository,
        provider_repository: ProviderRepository,
        source_registry: RateSourceRegistry,
        anchor_currencies: Sequence[str] = DEFAULT_ANCHOR_CURRENCIES,
        provider_confidence: float = DEFAULT_PROVIDER_CONFIDENCE,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.rate_repository = rate_repository
        self.provider_repository = provider_repository
        self.source_registry = source_registry
        self.anchor_currencies = [normalize_code(code) for code in anchor_currencies]
        self.provider_confidence = provider_confidence
        self.clock = clock

    async def build(self, on: datetime | None = None, provider_id: str | None = None) -> RateGraph:
        on = as_utc(on or self.clock())
        now = self.clock()
        graph = RateGraph()

        providers = await self._resolve_providers(provider_id)

        cached_rates = await self.rate_repository.find_all_up_to(on.date())
        for rate in self._latest_per_pair(cached_rates):
            edge = self._edge_from_cached(rate, now)
            if edge is not None:
                add_edge(graph, edge)
        cached_edges = graph.edge_count

        # providers are queried concurrently but merged in a fixed order
        results = await asyncio.gather(
            *(self._collect_provider_edges(provider, now) for provider in providers)
        )
        for edges in results:
            for edge in edges:
                add_edge(graph, edge)

        logger.info(
            f'Built rate graph for {on.date().isoformat()}: {len(graph.nodes)} currencies, '
            f'{graph.edge_count} edges ({cached_edges} from stored rates, {len(providers)} providers)'
        )
        return graph

    async def _resolve_providers(self, provider_id: str | None) -> list[ProviderInfo]:
        if provider_id:
            provider = await self.provider_repository.get(provider_id)
            if provider is None:
                logger.warning(f'Requested provider {provider_id} does not exist')
                return []
            return [provider]
        return await self.provider_repository.list_active()

    @staticmethod
    def _latest_per_pair(rates: list[CachedRate]) -> list[CachedRate]:
        """Rows arrive newest first; later rows for an already seen pair are dropped."""
        latest: dict[tuple[str, str], CachedRate] = {}
        for rate in rates:
            latest.setdefault((rate.from_currency, rate.to_currency), rate)
        return list(latest.values())

    @staticmethod
    def _edge_from_cached(rate: CachedRate, now: datetime) -> RateEdge | None:
        value = _parse_rate(rate.rate)
        if value is None:
            logger.warning(f'Skipping stored rate {rate.from_currency}/{rate.to_currency}: {rate.rate!r}')
            return None
        return RateEdge(
            from_currency=normalize_code(rate.from_currency),
            to_currency=normalize_code(rate.to_currency),
            rate=value,
            provider_id=rate.provider_id,
            provider_name=CACHED_PROVIDER_NAME,
            timestamp=rate.fetched_at,
            confidence=calculate_confidence(rate.fetched_at, now),
        )

    async def _collect_provider_edges(self, provider: ProviderInfo, now: datetime) -> list[RateEdge]:
        try:
            source = self.source_registry.resolve(provider)
        except Exception as e:
            logger.warning(f'Failed to fetch rates from {provider.name}: {e}')
            return []

        currencies = [normalize_code(code) for code in provider.supported_currencies if code]
        # plugin sources are asked one currency at a time, REST sources in one batch per base
        if provider.type is ProviderType.PLUGIN:
            batches = [[code] for code in currencies]
        else:
            batches = [currencies] if currencies else []

        edges: list[RateEdge] = []
        for batch in batches:
            for base in self.anchor_currencies:
                wanted = [code for code in batch if code != base]
                if not wanted:
                    continue
                try:
                    raw = await self._fetch_quotes(source, wanted, base)
                except Exception as e:
                    logger.debug(f'{provider.name} could not quote {",".join(wanted)} against {base}: {e}')
                    continue
                edges.extend(self._normalise_quotes(provider, raw, wanted, base, now))

        logger.debug(f'{provider.name} contributed {len(edges)} edges')
        return edges

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def _fetch_quotes(self, source: RateSource, currencies: list[str], base: str) -> RawRates:
        return await source.fetch_rates(currencies, base)

    def _normalise_quotes(
        self,
        provider: ProviderInfo,
        raw: RawRates,
        currencies: list[str],
        base: str,
        now: datetime,
    ) -> list[RateEdge]:
        """Turn raw "FROM/TO" quotes into edges that always point currency -> anchor."""
        wanted = set(currencies)
        edges = []
        for key, value in (raw or {}).items():
            pair = split_pair(str(key))
            rate = _parse_rate(value)
            if pair is None or rate is None:
                continue

            quote_from, quote_to = pair
            if quote_from == base and quote_to in wanted:
                currency, rate = quote_to, 1 / rate
            elif quote_to == base and quote_from in wanted:
                currency = quote_from
            else:
                continue

            edges.append(
                RateEdge(
                    from_currency=currency,
                    to_currency=base,
                    rate=rate,
                    provider_id=provider.id,
                    provider_name=provider.name,
                    timestamp=now,
                    confidence=self.provider_confidence,
                )
            )
        return edges
