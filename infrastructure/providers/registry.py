import importlib
import logging
from importlib.metadata import entry_points

from domain.exceptions.rates import ProviderError
from domain.models.rates import ProviderInfo
from infrastructure.providers.base import RateSource

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = 'rate_graph.sources'


class RateSourceRegistry:
    """
    Resolves a provider record to the RateSource that serves it.

    Lookup order: sources registered in-process (by provider id, then by the
    ``source`` name in the provider config), installed ``rate_graph.sources``
    entry points, and finally a ``module:attribute`` path in the config.
    Resolved sources are memoised per provider id.
    """

    def __init__(self):
        self._sources: dict[str, RateSource] = {}
        self._resolved: dict[str, RateSource] = {}

    def register(self, name: str, source: RateSource) -> None:
        if not isinstance(source, RateSource):
            raise TypeError(f'{name!r} does not implement fetch_rates()')
        self._sources[name] = source
        self._resolved.clear()

    def names(self) -> list[str]:
        return sorted(self._sources)

    def resolve(self, provider: ProviderInfo) -> RateSource:
        if provider.id in self._resolved:
            return self._resolved[provider.id]

        source_name = provider.config.get('source') or provider.name
        source = (
            self._sources.get(provider.id)
            or self._sources.get(source_name)
            or self._load_entry_point(source_name)
            or self._load_dotted_path(provider.config.get('path'))
        )
        if source is None:
            raise ProviderError(f'No rate source available for provider {provider.name}')

        self._resolved[provider.id] = source
        return source

    def _load_entry_point(self, name: str) -> RateSource | None:
        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            if entry_point.name == name:
                logger.info(f'Loading rate source {name} from {entry_point.value}')
                return self._instantiate(entry_point.load(), name)
        return None

    def _load_dotted_path(self, path: str | None) -> RateSource | None:
        if not path:
            return None
        module_name, _, attribute = path.partition(':')
        try:
            module = importlib.import_module(module_name)
            target = getattr(module, attribute) if attribute else module
        except (ImportError, AttributeError) as e:
            raise ProviderError(f'Failed to load rate source {path}: {e}') from e
        return self._instantiate(target, path)

    @staticmethod
    def _instantiate(target: object, name: str) -> RateSource:
        source = target() if isinstance(target, type) else target
        if not isinstance(source, RateSource):
            raise ProviderError(f'Rate source {name} does not implement fetch_rates()')
        return source

    async def close(self) -> None:
        for source in self._sources.values():
            close = getattr(source, 'close', None)
            if close is not None:
                await close()
