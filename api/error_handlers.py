import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.rates import InvalidCurrencyError, ProviderError, RateNotFoundError

logger = logging.getLogger(__name__)

NOT_FOUND_HINT = 'Please configure a rate provider.'


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidCurrencyError)
	async def invalid_currency_handler(request: Request, exc: InvalidCurrencyError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(RateNotFoundError)
	async def rate_not_found_handler(request: Request, exc: RateNotFoundError):
		return JSONResponse(status_code=404, content={'detail': f'{exc}. {NOT_FOUND_HINT}'})

	@app.exception_handler(ProviderError)
	async def provider_error_handler(request: Request, exc: ProviderError):
		logger.error(f'Provider error: {exc}')
		return JSONResponse(
			status_code=503, content={'detail': 'Exchange rate service unavailable'}
		)

	@app.exception_handler(Exception)
	async def global_exception_handler(request: Request, exc: Exception):
		logger.error(f'Unhandled exception: {exc}', exc_info=True)
		return JSONResponse(status_code=500, content={'detail': 'Internal server error'})
