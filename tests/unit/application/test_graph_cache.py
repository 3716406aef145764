# nosec B101

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from application.services.graph_cache import GraphCache
from domain.models.rates import RateGraph

EVALUATED_AT = datetime(2025, 11, 5, 12, 0, tzinfo=UTC)


class CountingBuilder:
    def __init__(self, delay: float = 0.0, error: Exception | None = None):
        self.delay = delay
        self.error = error
        self.builds = 0

    async def __call__(self) -> RateGraph:
        self.builds += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return RateGraph(nodes={f'N{self.builds}'})


@pytest.fixture
def cache(clock):
    return GraphCache(ttl=timedelta(minutes=5), clock=clock)


def test_key_is_calendar_day():
    assert GraphCache.make_key(EVALUATED_AT) == '2025-11-05'
    assert GraphCache.make_key(EVALUATED_AT.replace(hour=23, minute=59)) == '2025-11-05'


def test_provider_restricted_key_is_distinct():
    assert GraphCache.make_key(EVALUATED_AT, 'p-1') == '2025-11-05:p-1'
    assert GraphCache.make_key(EVALUATED_AT, 'p-1') != GraphCache.make_key(EVALUATED_AT)


@pytest.mark.asyncio
async def test_second_call_within_ttl_reuses_graph(cache, clock):
    build = CountingBuilder()

    first = await cache.get_or_build('2025-11-05', build)
    clock.advance(minutes=4, seconds=59)
    second = await cache.get_or_build('2025-11-05', build)

    assert first is second
    assert build.builds == 1


@pytest.mark.asyncio
async def test_expired_entry_is_rebuilt(cache, clock):
    build = CountingBuilder()

    first = await cache.get_or_build('2025-11-05', build)
    clock.advance(minutes=5)
    second = await cache.get_or_build('2025-11-05', build)

    assert first is not second
    assert build.builds == 2


@pytest.mark.asyncio
async def test_days_are_cached_independently(cache):
    build = CountingBuilder()

    await cache.get_or_build('2025-11-04', build)
    await cache.get_or_build('2025-11-05', build)

    assert build.builds == 2
    assert sorted(cache.stats().keys) == ['2025-11-04', '2025-11-05']


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_build(cache):
    build = CountingBuilder(delay=0.01)

    results = await asyncio.gather(
        *(cache.get_or_build('2025-11-05', build) for _ in range(5))
    )

    assert build.builds == 1
    assert all(graph is results[0] for graph in results)


@pytest.mark.asyncio
async def test_failed_build_is_not_cached(cache):
    failing = CountingBuilder(error=RuntimeError('store unavailable'))

    with pytest.raises(RuntimeError):
        await cache.get_or_build('2025-11-05', failing)

    assert cache.get('2025-11-05') is None
    assert cache.stats().size == 0

    graph = await cache.get_or_build('2025-11-05', CountingBuilder())
    assert graph.nodes == {'N1'}


@pytest.mark.asyncio
async def test_failed_build_is_raised_to_every_waiter(cache):
    failing = CountingBuilder(delay=0.01, error=RuntimeError('store unavailable'))

    results = await asyncio.gather(
        *(cache.get_or_build('2025-11-05', failing) for _ in range(3)),
        return_exceptions=True,
    )

    assert failing.builds == 1
    assert all(isinstance(result, RuntimeError) for result in results)


@pytest.mark.asyncio
async def test_clear_drops_entries(cache):
    build = CountingBuilder()
    await cache.get_or_build('2025-11-05', build)

    cache.clear()

    assert cache.stats().size == 0
    await cache.get_or_build('2025-11-05', build)
    assert build.builds == 2


@pytest.mark.asyncio
async def test_build_running_during_clear_is_not_stored(cache):
    build = CountingBuilder(delay=0.01)

    task = asyncio.create_task(cache.get_or_build('2025-11-05', build))
    await asyncio.sleep(0)
    cache.clear()
    graph = await task

    assert graph.nodes == {'N1'}
    assert cache.get('2025-11-05') is None


@pytest.mark.asyncio
async def test_stats_report_size_and_keys(cache):
    assert cache.stats().size == 0
    assert cache.stats().keys == []

    await cache.get_or_build('2025-11-05', CountingBuilder())
    await cache.get_or_build('2025-11-05:p-1', CountingBuilder())

    stats = cache.stats()
    assert stats.size == 2
    assert set(stats.keys) == {'2025-11-05', '2025-11-05:p-1'}
