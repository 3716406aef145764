from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_graph_cache, get_source_registry
from application.services import GraphCache
from infrastructure.providers import RateSourceRegistry

router = APIRouter(tags=['health'])


@router.get('/health', summary='Service health')
async def health(
	graph_cache: Annotated[GraphCache, Depends(get_graph_cache)],
	registry: Annotated[RateSourceRegistry, Depends(get_source_registry)],
) -> dict:
	stats = graph_cache.stats()
	return {
		'status': 'healthy',
		'cached_graphs': stats.size,
		'rate_sources': registry.names(),
	}
