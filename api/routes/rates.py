from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_coordinator
from api.schemas import (
	AcceptedResponse,
	AmountRequest,
	ConversionResponse,
	CurrencySearchResponse,
	MoveRateRequest,
	RateResponse,
	RatesStateResponse,
)
from application.services import RateCoordinator
from domain.exceptions.currency import InvalidCurrencyError, RateStateError

router = APIRouter(prefix='/api', tags=['rates'])

CurrencyCode = Annotated[str, Path(min_length=3, max_length=5)]


def build_state_response(coordinator: RateCoordinator) -> RatesStateResponse:
	state = coordinator.state
	conversion = state.conversion
	rates = []
	if conversion.basis is not None:
		rates = [
			RateResponse(
				currency=rate.currency_code,
				rate=rate.rate_relative_to_basis,
				converted_amount=converted,
			)
			for rate, converted in coordinator.engine.converted_amounts(conversion)
		]

	return RatesStateResponse(
		basis_currency=conversion.basis.currency_code if conversion.basis else None,
		observed_at=state.snapshot.observed_at if state.snapshot else None,
		amount_to_convert=conversion.amount_to_convert,
		input_error=conversion.input_error or None,
		is_fetching=state.is_fetching,
		error_message=state.error_message,
		rates=rates,
	)


@router.get(
	'/rates',
	response_model=RatesStateResponse,
	status_code=status.HTTP_200_OK,
	summary='Current rates, amount and converted values',
)
async def get_rates(
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> RatesStateResponse:
	return build_state_response(coordinator)


@router.post(
	'/rates/refresh',
	response_model=AcceptedResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Request a fresh fetch (silently skipped while bandwidth is restricted)',
)
async def refresh_rates(
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> AcceptedResponse:
	coordinator.request_fetch()
	return AcceptedResponse()


@router.post(
	'/rates/move',
	response_model=AcceptedResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Move a rate within the list; index 0 makes it the basis',
)
async def move_rate(
	request: MoveRateRequest,
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> AcceptedResponse:
	coordinator.move_rate(request.from_index, request.to_index)
	return AcceptedResponse()


@router.put(
	'/amount',
	response_model=AcceptedResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Set the amount to convert',
)
async def set_amount(
	request: AmountRequest,
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> AcceptedResponse:
	# The coordinator records the advisory message; the client gets a 422 as well
	coordinator.set_amount(request.value)
	coordinator.engine.set_amount(request.value)
	return AcceptedResponse()


@router.put(
	'/basis/{currency}',
	response_model=AcceptedResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Change the basis currency',
)
async def change_basis(
	currency: CurrencyCode,
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> AcceptedResponse:
	currency = currency.upper()
	if coordinator.state.conversion.find(currency) is None:
		raise InvalidCurrencyError(f'Currency {currency} is not in the current rate list')
	coordinator.change_basis(currency)
	return AcceptedResponse()


@router.delete(
	'/error',
	response_model=AcceptedResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Dismiss the last provider error',
)
async def dismiss_error(
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
) -> AcceptedResponse:
	coordinator.dismiss_error()
	return AcceptedResponse()


@router.get(
	'/convert/{currency}',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Convert from the current basis to one currency',
)
async def convert(
	currency: CurrencyCode,
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
	amount: Annotated[Decimal | None, Query(ge=0)] = None,
) -> ConversionResponse:
	state = coordinator.state
	if state.snapshot is None or state.conversion.basis is None:
		raise RateStateError('No rates have been loaded')

	currency = currency.upper()
	if amount is None:
		amount = state.conversion.amount_to_convert
	converted = coordinator.converted_amount(currency, amount)

	return ConversionResponse(
		from_currency=state.conversion.basis.currency_code,
		to_currency=currency,
		original_amount=amount,
		converted_amount=converted,
		observed_at=state.snapshot.observed_at,
	)


@router.get(
	'/currencies/search',
	response_model=CurrencySearchResponse,
	status_code=status.HTTP_200_OK,
	summary='Search the currencies available for conversion',
)
async def search_currencies(
	coordinator: Annotated[RateCoordinator, Depends(get_coordinator)],
	q: Annotated[str, Query(max_length=10)] = '',
) -> CurrencySearchResponse:
	matches = coordinator.engine.search(coordinator.state.conversion, q)
	return CurrencySearchResponse(currencies=[r.currency_code for r in matches])
