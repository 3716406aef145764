import logging
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from application.services import ConversionService, GraphBuilder, GraphCache, RateService
from config.settings import Settings, get_settings
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.rates import ExchangeRateRepository, ProviderRepository
from infrastructure.providers import FixerIOSource, OpenExchangeSource, RateSourceRegistry

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	db: Database | None = None
	redis_client: Redis | None = None
	redis_cache: RedisCacheService | None = None
	graph_cache: GraphCache | None = None
	source_registry: RateSourceRegistry | None = None


deps = AppDependencies()


def init_dependencies(settings: Settings | None = None) -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = settings or get_settings()

	deps.db = Database(settings.DATABASE_URL)
	if settings.REDIS_URL:
		deps.redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
		deps.redis_cache = RedisCacheService(deps.redis_client)

	deps.graph_cache = GraphCache(ttl=timedelta(seconds=settings.GRAPH_CACHE_TTL_SECONDS))

	deps.source_registry = RateSourceRegistry()
	if settings.FIXERIO_API_KEY:
		deps.source_registry.register('fixerio', FixerIOSource(settings.FIXERIO_API_KEY))
	if settings.OPENEXCHANGE_APP_ID:
		deps.source_registry.register('openexchange', OpenExchangeSource(settings.OPENEXCHANGE_APP_ID))
	logger.info(f'Dependencies initialized, rate sources: {deps.source_registry.names()}')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.redis_client:
		await deps.redis_client.aclose()
	if deps.db:
		await deps.db.close()
	if deps.source_registry:
		await deps.source_registry.close()

	logger.info('Cleanup complete')


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
	if deps.db is None:
		raise RuntimeError('Database is not initialized')

	async with deps.db.session() as session:
		yield session


def get_redis_cache() -> RedisCacheService | None:
	return deps.redis_cache


def get_graph_cache() -> GraphCache:
	if deps.graph_cache is None:
		raise RuntimeError('Graph cache not initialized')
	return deps.graph_cache


def get_source_registry() -> RateSourceRegistry:
	if deps.source_registry is None:
		raise RuntimeError('Rate sources not initialized')
	return deps.source_registry


async def get_rate_repository(
	session: Annotated[AsyncSession, Depends(get_db_session)],
	cache: Annotated[RedisCacheService | None, Depends(get_redis_cache)],
) -> ExchangeRateRepository:
	return ExchangeRateRepository(db_session=session, cache_service=cache)


async def get_provider_repository(
	session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ProviderRepository:
	return ProviderRepository(db_session=session)


async def get_graph_builder(
	rate_repository: Annotated[ExchangeRateRepository, Depends(get_rate_repository)],
	provider_repository: Annotated[ProviderRepository, Depends(get_provider_repository)],
	registry: Annotated[RateSourceRegistry, Depends(get_source_registry)],
	settings: Annotated[Settings, Depends(get_settings)],
) -> GraphBuilder:
	return GraphBuilder(
		rate_repository=rate_repository,
		provider_repository=provider_repository,
		source_registry=registry,
		anchor_currencies=settings.ANCHOR_CURRENCIES,
		provider_confidence=settings.PROVIDER_RATE_CONFIDENCE,
	)


async def get_rate_service(
	rate_repository: Annotated[ExchangeRateRepository, Depends(get_rate_repository)],
	provider_repository: Annotated[ProviderRepository, Depends(get_provider_repository)],
	graph_builder: Annotated[GraphBuilder, Depends(get_graph_builder)],
	graph_cache: Annotated[GraphCache, Depends(get_graph_cache)],
	settings: Annotated[Settings, Depends(get_settings)],
) -> RateService:
	return RateService(
		rate_repository=rate_repository,
		provider_repository=provider_repository,
		graph_builder=graph_builder,
		graph_cache=graph_cache,
		max_hops=settings.MAX_HOPS,
		min_confidence=settings.MIN_CONFIDENCE,
		all_paths_max_hops=settings.ALL_PATHS_MAX_HOPS,
		all_paths_max_results=settings.ALL_PATHS_MAX_RESULTS,
	)


async def get_conversion_service(
	rate_service: Annotated[RateService, Depends(get_rate_service)],
	settings: Annotated[Settings, Depends(get_settings)],
) -> ConversionService:
	return ConversionService(
		rate_service=rate_service, fallback_to_identity=settings.CONVERT_FALLBACK_TO_IDENTITY
	)
