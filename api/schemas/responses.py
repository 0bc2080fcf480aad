from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class RateResponse(BaseModel):
	currency: str = Field(..., description='Currency code')
	rate: Decimal = Field(..., description='Rate relative to the fetched basis currency')
	converted_amount: Decimal = Field(..., description='Amount to convert expressed in this currency')


class RatesStateResponse(BaseModel):
	basis_currency: str | None = Field(None, description='Currency the amount is entered in')
	observed_at: datetime | None = Field(None, description='When the provider observed the rates')
	amount_to_convert: Decimal = Field(..., description='Current amount')
	input_error: str | None = Field(None, description='Advisory message for the last rejected input')
	is_fetching: bool = Field(..., description='A provider call is in flight')
	error_message: str | None = Field(None, description='Last provider error, until dismissed')
	rates: list[RateResponse] = Field(default_factory=list, description='Every currency except the basis')

	class ConfigDict:
		json_schema_extra = {
			'example': {
				'basis_currency': 'USD',
				'observed_at': '2026-01-15T10:30:00Z',
				'amount_to_convert': 1.0,
				'input_error': None,
				'is_fetching': False,
				'error_message': None,
				'rates': [{'currency': 'JPY', 'rate': 115.7, 'converted_amount': 115.7}],
			}
		}


class ConversionResponse(BaseModel):
	from_currency: str = Field(..., description='Current basis currency')
	to_currency: str = Field(..., description='Target currency code')
	original_amount: Decimal = Field(..., description='Amount converted')
	converted_amount: Decimal = Field(..., description='Converted amount')
	observed_at: datetime = Field(..., description='When the rates were observed')


class AcceptedResponse(BaseModel):
	status: str = 'accepted'


class CurrencySearchResponse(BaseModel):
	currencies: list[str] = Field(description='Matching currency codes')

	class ConfigDict:
		json_schema_extra = {'examples': [{'currencies': ['JPY']}]}
