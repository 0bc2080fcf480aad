from .requests import AmountRequest, MoveRateRequest
from .responses import (
	AcceptedResponse,
	ConversionResponse,
	CurrencySearchResponse,
	RateResponse,
	RatesStateResponse,
)

__all__ = [
	'AcceptedResponse',
	'AmountRequest',
	'ConversionResponse',
	'CurrencySearchResponse',
	'MoveRateRequest',
	'RateResponse',
	'RatesStateResponse',
]
