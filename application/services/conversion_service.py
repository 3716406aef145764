import logging
from datetime import datetime
from decimal import Decimal

from application.services.rate_service import RateService
from domain.exceptions.rates import RateNotFoundError
from domain.models.rates import ConversionResult, normalize_code

logger = logging.getLogger(__name__)


class ConversionService:
	def __init__(self, rate_service: RateService, fallback_to_identity: bool = False):
		self.rate_service = rate_service
		self.fallback_to_identity = fallback_to_identity

	async def convert(
		self, amount: Decimal, from_currency: str, to_currency: str, date: datetime | None = None
	) -> ConversionResult:
		"""
		Convert using the best available rate.

		When no rate exists this raises RateNotFoundError, unless the service was
		created with fallback_to_identity, in which case the amount is passed
		through 1:1 and the result is flagged with rate_found=False.
		"""
		from_currency = normalize_code(from_currency)
		to_currency = normalize_code(to_currency)

		result = await self.rate_service.get_rate(from_currency, to_currency, date=date)

		if result is None:
			if not self.fallback_to_identity:
				raise RateNotFoundError(from_currency, to_currency)
			logger.warning(f'No rate for {from_currency}/{to_currency}, converting 1:1')

		rate = result.rate if result else 1.0

		return ConversionResult(
			amount=amount,
			from_currency=from_currency,
			to_currency=to_currency,
			converted_amount=amount * Decimal(str(rate)),
			rate=rate,
			date=date or self.rate_service.clock(),
			path=result.path if result else None,
			hops=result.hops if result else None,
			is_inferred=result.is_inferred if result else False,
			rate_found=result is not None,
		)
