import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.currency import InvalidAmountError, InvalidCurrencyError, RateStateError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(InvalidCurrencyError)
	async def invalid_currency_handler(request: Request, exc: InvalidCurrencyError):
		return JSONResponse(status_code=400, content={'detail': str(exc)})

	@app.exception_handler(InvalidAmountError)
	async def invalid_amount_handler(request: Request, exc: InvalidAmountError):
		return JSONResponse(status_code=422, content={'detail': str(exc)})

	@app.exception_handler(RateStateError)
	async def rates_not_loaded_handler(request: Request, exc: RateStateError):
		logger.warning(f'Conversion requested before rates were loaded: {exc}')
		return JSONResponse(
			status_code=503, content={'detail': 'Exchange rates are not available yet'}
		)
