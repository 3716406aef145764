import json
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

from redis import asyncio as redis

from domain.exceptions.rates import CacheError
from domain.models.rates import CachedRate


class RedisCacheService:
    """Read-through cache for direct (pair, day) rate lookups."""

    def __init__(self, redis_client: redis.Redis, rate_ttl: timedelta = timedelta(minutes=5)):
        self.redis = redis_client
        self.rate_ttl = rate_ttl

    def _make_rate_key(self, from_currency: str, to_currency: str, on_date: date) -> str:
        return f"rate:{from_currency}:{to_currency}:{on_date.isoformat()}"

    async def get_rate(self, from_currency: str, to_currency: str, on_date: date) -> CachedRate | None:
        key = self._make_rate_key(from_currency, to_currency, on_date)
        data = await self.redis.get(key)

        if not data:
            return None

        try:
            rate_dict = json.loads(data)
            return CachedRate(
                from_currency=rate_dict["from_currency"],
                to_currency=rate_dict["to_currency"],
                rate=Decimal(rate_dict["rate"]),
                date=date.fromisoformat(rate_dict["date"]),
                fetched_at=datetime.fromisoformat(rate_dict["fetched_at"]),
                provider_id=rate_dict.get("provider_id"),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise CacheError(f"Invalid json data for {key}: {e}") from e

    async def set_rate(self, rate: CachedRate) -> None:
        key = self._make_rate_key(rate.from_currency, rate.to_currency, rate.date)

        rate_dict = {
            "from_currency": rate.from_currency,
            "to_currency": rate.to_currency,
            "rate": str(rate.rate),
            "date": rate.date.isoformat(),
            "fetched_at": rate.fetched_at.isoformat(),
            "provider_id": rate.provider_id,
        }

        await self.redis.setex(key, self.rate_ttl, json.dumps(rate_dict))

    async def delete_rate(self, from_currency: str, to_currency: str, on_date: date) -> None:
        await self.redis.delete(self._make_rate_key(from_currency, to_currency, on_date))
