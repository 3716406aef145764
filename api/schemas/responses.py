from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class RateResponse(BaseModel):
	model_config = ConfigDict(
		from_attributes=True,
		json_schema_extra={
			'example': {
				'from_currency': 'BTC',
				'to_currency': 'USD',
				'rate': 30000.0,
				'timestamp': '2025-09-27T10:30:00Z',
				'source': 'graph-inference',
				'path': ['BTC', 'ETH', 'USDT', 'USD'],
				'hops': 3,
				'is_inferred': True,
			}
		},
	)

	from_currency: str = Field(..., description='Source currency code')
	to_currency: str = Field(..., description='Target currency code')
	rate: float = Field(..., description='Units of target per unit of source')
	timestamp: datetime = Field(..., description='When the rate was observed or inferred')
	source: str = Field(..., description='Provider name, identity or graph-inference')
	path: list[str] = Field(..., description='Currencies traversed, both endpoints included')
	hops: int = Field(..., description='Number of conversions applied')
	is_inferred: bool = Field(..., description='True when composed from several rates')


class ConversionResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	from_currency: str = Field(..., description='Source currency code')
	to_currency: str = Field(..., description='Target currency code')
	amount: Decimal = Field(..., description='Original amount requested')
	converted_amount: Decimal = Field(..., description='Converted amount')
	rate: float = Field(..., description='Exchange rate used for conversion')
	date: datetime = Field(..., description='Evaluation date of the rate')
	path: list[str] | None = None
	hops: int | None = None
	is_inferred: bool = False
	rate_found: bool = Field(True, description='False when a 1:1 fallback was applied')


class PathResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	path: list[str]
	total_rate: float
	hops: int


class AvailablePathsResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	from_currency: str
	to_currency: str
	paths: list[PathResponse]
	total_paths: int


class RateHistoryEntryResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	from_currency: str
	to_currency: str
	rate: float
	date: datetime
	fetched_at: datetime
	provider_id: str


class RateHistoryResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	rates: list[RateHistoryEntryResponse]
	total: int


class AverageRateResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	average_rate: float
	min_rate: float
	max_rate: float
	sample_count: int


class TrendPointResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	date: str
	rate: float


class RateTrendResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	min_rate: float
	max_rate: float
	avg_rate: float
	trend: Literal['up', 'down', 'stable']
	change_percent: float
	history: list[TrendPointResponse]


class CacheStatsResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	size: int = Field(..., description='Number of cached graphs')
	keys: list[str] = Field(..., description='Cached calendar days')
