from .base import RateSource
from .fixerio import FixerIOSource
from .openexchange import OpenExchangeSource
from .registry import RateSourceRegistry

__all__ = ['RateSource', 'FixerIOSource', 'OpenExchangeSource', 'RateSourceRegistry']
