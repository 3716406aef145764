from .requests import ConversionRequest
from .responses import (
	AvailablePathsResponse,
	AverageRateResponse,
	CacheStatsResponse,
	ConversionResponse,
	PathResponse,
	RateHistoryEntryResponse,
	RateHistoryResponse,
	RateResponse,
	RateTrendResponse,
	TrendPointResponse,
)

__all__ = [
	'AvailablePathsResponse',
	'AverageRateResponse',
	'CacheStatsResponse',
	'ConversionRequest',
	'ConversionResponse',
	'PathResponse',
	'RateHistoryEntryResponse',
	'RateHistoryResponse',
	'RateResponse',
	'RateTrendResponse',
	'TrendPointResponse',
]
