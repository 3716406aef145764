from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_conversion_service, get_rate_service
from api.schemas import (
	AvailablePathsResponse,
	AverageRateResponse,
	CacheStatsResponse,
	ConversionRequest,
	ConversionResponse,
	RateHistoryResponse,
	RateResponse,
	RateTrendResponse,
)
from application.services import ConversionService, RateService
from domain.exceptions.rates import RateNotFoundError

router = APIRouter(prefix='/api/rates', tags=['rates'])

FromCurrency = Annotated[str, Query(alias='from', min_length=2, max_length=10)]
ToCurrency = Annotated[str, Query(alias='to', min_length=2, max_length=10)]


@router.get(
	'/latest',
	response_model=RateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get latest exchange rate',
)
async def get_latest_rate(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	service: Annotated[RateService, Depends(get_rate_service)],
) -> RateResponse:
	result = await service.get_latest_rate(from_currency, to_currency)
	if result is None:
		raise RateNotFoundError(from_currency.upper(), to_currency.upper())
	return RateResponse.model_validate(result)


@router.get(
	'/at',
	response_model=RateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get exchange rate at a point in time',
)
async def get_rate_at_date(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	date: Annotated[datetime, Query()],
	service: Annotated[RateService, Depends(get_rate_service)],
) -> RateResponse:
	result = await service.get_rate_at_date(from_currency, to_currency, date)
	if result is None:
		raise RateNotFoundError(from_currency.upper(), to_currency.upper())
	return RateResponse.model_validate(result)


@router.get(
	'/history',
	response_model=RateHistoryResponse,
	status_code=status.HTTP_200_OK,
	summary='Get exchange rate history',
)
async def get_rate_history(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	service: Annotated[RateService, Depends(get_rate_service)],
	from_date: Annotated[datetime | None, Query()] = None,
	to_date: Annotated[datetime | None, Query()] = None,
	limit: Annotated[int, Query(ge=1, le=366)] = 100,
) -> RateHistoryResponse:
	history = await service.get_rate_history(
		from_currency, to_currency, from_date=from_date, to_date=to_date, limit=limit
	)
	return RateHistoryResponse.model_validate(history)


@router.get(
	'/trend',
	response_model=RateTrendResponse,
	status_code=status.HTTP_200_OK,
	summary='Get exchange rate trend',
)
async def get_rate_trend(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	service: Annotated[RateService, Depends(get_rate_service)],
	days: Annotated[int, Query(ge=1, le=366)] = 30,
) -> RateTrendResponse:
	trend = await service.get_rate_trend(from_currency, to_currency, days)
	return RateTrendResponse.model_validate(trend)


@router.get(
	'/average',
	response_model=AverageRateResponse,
	status_code=status.HTTP_200_OK,
	summary='Get average exchange rate over a date range',
)
async def get_average_rate(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	from_date: Annotated[datetime, Query()],
	to_date: Annotated[datetime, Query()],
	service: Annotated[RateService, Depends(get_rate_service)],
) -> AverageRateResponse:
	average = await service.get_average_rate(from_currency, to_currency, from_date, to_date)
	return AverageRateResponse.model_validate(average)


@router.post(
	'/convert',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Convert currency amount',
)
async def convert_currency(
	request: ConversionRequest,
	service: Annotated[ConversionService, Depends(get_conversion_service)],
) -> ConversionResponse:
	result = await service.convert(
		request.amount, request.from_currency, request.to_currency, date=request.date
	)
	return ConversionResponse.model_validate(result)


@router.get(
	'/paths',
	response_model=AvailablePathsResponse,
	status_code=status.HTTP_200_OK,
	summary='Get all available conversion paths between currencies',
)
async def get_available_paths(
	from_currency: FromCurrency,
	to_currency: ToCurrency,
	service: Annotated[RateService, Depends(get_rate_service)],
	date: Annotated[datetime | None, Query()] = None,
) -> AvailablePathsResponse:
	paths = await service.get_available_paths(from_currency, to_currency, date)
	return AvailablePathsResponse.model_validate(paths)


@router.get(
	'/cache/stats',
	response_model=CacheStatsResponse,
	status_code=status.HTTP_200_OK,
	summary='Inspect the rate graph cache',
)
async def get_cache_stats(
	service: Annotated[RateService, Depends(get_rate_service)],
) -> CacheStatsResponse:
	return CacheStatsResponse.model_validate(service.get_cache_stats())


@router.delete(
	'/cache',
	status_code=status.HTTP_204_NO_CONTENT,
	summary='Drop every cached rate graph',
)
async def clear_cache(service: Annotated[RateService, Depends(get_rate_service)]) -> None:
	service.clear_cache()
