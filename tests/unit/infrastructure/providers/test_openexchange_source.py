# nosec B101

from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from domain.exceptions.rates import ProviderError
from infrastructure.providers.openexchange import OpenExchangeSource


@pytest.fixture
def mock_client():
    return AsyncMock(spec=httpx.AsyncClient)


def ok_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status = Mock()
    return response


@pytest.mark.asyncio
async def test_fetch_rates_success(mock_client):
    mock_client.get.return_value = ok_response({
        "base": "USD",
        "rates": {"EUR": 0.92, "JPY": 149.5},
    })
    source = OpenExchangeSource(app_id="test_app", client=mock_client)

    rates = await source.fetch_rates(["EUR", "JPY"], "USD")

    assert rates == {"USD/EUR": 0.92, "USD/JPY": 149.5}
    call_args = mock_client.get.call_args
    assert call_args[0][0] == "https://openexchangerates.org/api/latest.json"
    assert call_args[1]["params"] == {"base": "USD", "symbols": "EUR,JPY", "app_id": "test_app"}


@pytest.mark.asyncio
async def test_fetch_rates_api_error_uses_description(mock_client):
    mock_client.get.return_value = ok_response({
        "error": True,
        "status": 403,
        "message": "not_allowed",
        "description": "Changing the API base currency is available for Developer plans",
    })
    source = OpenExchangeSource(app_id="test_app", client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await source.fetch_rates(["EUR"], "GBP")

    assert "Developer plans" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_rates_connection_error(mock_client):
    mock_client.get.side_effect = httpx.ConnectError("Connection refused")
    source = OpenExchangeSource(app_id="test_app", client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await source.fetch_rates(["EUR"], "USD")

    assert "ConnectError" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_rates_http_error(mock_client):
    error_response = Mock()
    error_response.status_code = 401
    error_response.text = "invalid_app_id"
    mock_client.get.side_effect = httpx.HTTPStatusError(
        "Unauthorized", request=Mock(), response=error_response
    )
    source = OpenExchangeSource(app_id="bad", client=mock_client)

    with pytest.raises(ProviderError) as exc_info:
        await source.fetch_rates(["EUR"], "USD")

    assert "HTTP error 401" in str(exc_info.value)
