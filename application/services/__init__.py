from .conversion_service import ConversionService
from .graph_builder import GraphBuilder
from .graph_cache import GraphCache
from .rate_service import RateService

__all__ = ['ConversionService', 'GraphBuilder', 'GraphCache', 'RateService']
