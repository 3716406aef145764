from collections.abc import Iterable

import httpx

from domain.exceptions.rates import ProviderError
from infrastructure.providers.base import RawRates


class FixerIOSource:
	BASE_URL = 'http://data.fixer.io/api'

	def __init__(self, api_key: str, client: httpx.AsyncClient | None = None, timeout: int = 10):
		self.api_key = api_key
		self._client = client or httpx.AsyncClient(timeout=timeout)

	@property
	def name(self) -> str:
		return 'fixerio'

	async def _request(self, endpoint: str, params: dict) -> dict:
		params['access_key'] = self.api_key
		url = f'{self.BASE_URL}/{endpoint}'

		try:
			response = await self._client.get(url, params=params)
			response.raise_for_status()
			data = response.json()
		except httpx.HTTPStatusError as e:
			raise ProviderError(
				f'Fixer.io HTTP error {e.response.status_code}: {e.response.text[:200]}'
			) from e
		except httpx.RequestError as e:
			raise ProviderError(f'Fixer.io request failed: {e.__class__.__name__}') from e
		except ValueError as e:
			raise ProviderError(f'Fixer.io response parsing error: {str(e)}') from e

		if not data.get('success', False):
			info = data.get('error', {}).get('info', 'Unknown error')
			raise ProviderError(f'Fixer.io API error: {info}')

		return data

	async def fetch_rates(self, currencies: Iterable[str], base: str) -> RawRates:
		"""Quotes come back as BASE/CUR: one unit of base buys `value` of the currency."""
		symbols = ','.join(currencies)
		data = await self._request('latest', {'base': base, 'symbols': symbols})
		return {f'{base}/{code}': value for code, value in data.get('rates', {}).items()}

	async def close(self) -> None:
		await self._client.aclose()
