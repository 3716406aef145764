from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from domain.models.rates import CachedRate, ProviderInfo, ProviderType
from infrastructure.cache.redis_cache import RedisCacheService
from infrastructure.persistence.models.rates import ExchangeRateDB, RateProviderDB


def _to_cached_rate(row: ExchangeRateDB) -> CachedRate:
	return CachedRate(
		from_currency=row.from_currency,
		to_currency=row.to_currency,
		rate=row.rate,
		date=row.rate_date,
		fetched_at=row.fetched_at,
		provider_id=row.provider_id,
	)


def _to_provider_info(row: RateProviderDB) -> ProviderInfo:
	return ProviderInfo(
		id=row.id,
		name=row.name,
		type=ProviderType(row.type),
		is_active=row.is_active,
		supported_currencies=list(row.supported_currencies or []),
		config=dict(row.config or {}),
	)


class ExchangeRateRepository:
	def __init__(self, db_session: AsyncSession, cache_service: RedisCacheService | None = None):
		self.db_session = db_session
		self.cache = cache_service

	async def find(self, from_currency: str, to_currency: str, on_date: date) -> CachedRate | None:
		"""Most recently fetched rate stored for exactly this pair and day."""
		if self.cache:
			cached = await self.cache.get_rate(from_currency, to_currency, on_date)
			if cached:
				return cached

		stmt = (
			select(ExchangeRateDB)
			.filter(
				ExchangeRateDB.from_currency == from_currency,
				ExchangeRateDB.to_currency == to_currency,
				ExchangeRateDB.rate_date == on_date,
			)
			.order_by(ExchangeRateDB.fetched_at.desc())
			.limit(1)
		)
		result = await self.db_session.execute(stmt)
		row = result.scalars().first()
		if row is None:
			return None

		rate = _to_cached_rate(row)
		if self.cache:
			await self.cache.set_rate(rate)
		return rate

	async def find_all_up_to(self, on_date: date) -> list[CachedRate]:
		stmt = (
			select(ExchangeRateDB)
			.filter(ExchangeRateDB.rate_date <= on_date)
			.order_by(ExchangeRateDB.fetched_at.desc(), ExchangeRateDB.id.desc())
		)
		result = await self.db_session.execute(stmt)
		return [_to_cached_rate(row) for row in result.scalars().all()]

	async def save_rate(self, rate: CachedRate) -> None:
		self.db_session.add(
			ExchangeRateDB(
				from_currency=rate.from_currency,
				to_currency=rate.to_currency,
				rate=rate.rate,
				rate_date=rate.date,
				fetched_at=rate.fetched_at,
				provider_id=rate.provider_id,
			)
		)
		if self.cache:
			await self.cache.delete_rate(rate.from_currency, rate.to_currency, rate.date)


class ProviderRepository:
	def __init__(self, db_session: AsyncSession):
		self.db_session = db_session

	async def get(self, provider_id: str) -> ProviderInfo | None:
		row = await self.db_session.get(RateProviderDB, provider_id)
		return _to_provider_info(row) if row else None

	async def list_active(self) -> list[ProviderInfo]:
		result = await self.db_session.execute(
			select(RateProviderDB).filter(RateProviderDB.is_active.is_(True)).order_by(RateProviderDB.name)
		)
		return [_to_provider_info(row) for row in result.scalars().all()]

	async def save(self, provider: ProviderInfo) -> None:
		await self.db_session.merge(
			RateProviderDB(
				id=provider.id,
				name=provider.name,
				type=provider.type.value,
				is_active=provider.is_active,
				supported_currencies=list(provider.supported_currencies),
				config=dict(provider.config),
			)
		)
