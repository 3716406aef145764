from collections.abc import Iterable

import httpx

from domain.exceptions.rates import ProviderError
from infrastructure.providers.base import RawRates


class OpenExchangeSource:
    BASE_URL = "https://openexchangerates.org/api"

    def __init__(self, app_id: str, client: httpx.AsyncClient | None = None, timeout: int = 10):
        self.app_id = app_id
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "openexchange"

    async def _request(self, endpoint: str, params: dict) -> dict:
        params["app_id"] = self.app_id
        url = f"{self.BASE_URL}/{endpoint}"

        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"OpenExchange HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"OpenExchange request failed: {e.__class__.__name__}") from e
        except ValueError as e:
            raise ProviderError(f"OpenExchange response parsing error: {str(e)}") from e

        if "error" in data:
            message = data.get("description", data.get("message", "Unknown error"))
            raise ProviderError(f"OpenExchange API error: {message}")

        return data

    async def fetch_rates(self, currencies: Iterable[str], base: str) -> RawRates:
        symbols = ",".join(currencies)
        data = await self._request("latest.json", {"base": base, "symbols": symbols})
        return {f"{base}/{code}": value for code, value in data.get("rates", {}).items()}

    async def close(self) -> None:
        await self._client.aclose()
