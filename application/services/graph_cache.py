import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from domain.models.rates import CacheStats, RateGraph
from domain.utils.time import day_key, utc_now

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_TTL = timedelta(minutes=5)


@dataclass(frozen=True)
class CachedGraphEntry:
    graph: RateGraph
    expires_at: datetime


class GraphCache:
    """
    Built rate graphs keyed by calendar day.

    Entries are only checked for expiry when read; nothing sweeps them. At most
    one build runs per key: callers that miss while a build is in flight await
    that build instead of starting their own. A failed build is not cached and
    its error is raised to every caller waiting on it.
    """

    def __init__(self, ttl: timedelta = DEFAULT_GRAPH_TTL, clock: Callable[[], datetime] = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CachedGraphEntry] = {}
        self._in_flight: dict[str, asyncio.Future[RateGraph]] = {}
        self._generation = 0

    @staticmethod
    def make_key(on: datetime, provider_id: str | None = None) -> str:
        key = day_key(on)
        return f'{key}:{provider_id}' if provider_id else key

    def get(self, key: str) -> RateGraph | None:
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > self._clock():
            return entry.graph
        return None

    async def get_or_build(self, key: str, build: Callable[[], Awaitable[RateGraph]]) -> RateGraph:
        graph = self.get(key)
        if graph is not None:
            logger.debug(f'Graph cache HIT for {key}')
            return graph

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug(f'Graph cache MISS for {key}, joining build in progress')
            return await asyncio.shield(pending)

        logger.debug(f'Graph cache MISS for {key}, building')
        future: asyncio.Future[RateGraph] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        generation = self._generation
        try:
            graph = await build()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # mark retrieved so an unawaited failure is not reported twice
            future.exception()
            raise
        else:
            if generation == self._generation:
                self._entries[key] = CachedGraphEntry(graph=graph, expires_at=self._clock() + self.ttl)
            future.set_result(graph)
            return graph
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def clear(self) -> None:
        """Drop every entry; builds already running will not store their result."""
        self._entries.clear()
        self._in_flight.clear()
        self._generation += 1
        logger.info('Graph cache cleared')

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._entries), keys=list(self._entries))
