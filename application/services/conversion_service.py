import logging
import re
from dataclasses import replace
from decimal import Decimal

from domain.exceptions.currency import InvalidAmountError, InvalidCurrencyError, RateStateError
from domain.models.currency import ConversionState, Rate, RateSnapshot

logger = logging.getLogger(__name__)

# Plain decimal-pad input: digits with at most one point ("1.", ".5", "12.30")
AMOUNT_PATTERN = re.compile(r"^(\d+\.?\d*|\.\d+)$")

BASIS_RATE = Decimal("1.0")


class ConversionEngine:
	"""Turns snapshots into an ordered rate list and converts amounts across it.

	Every stored rate stays relative to the basis the snapshot was fetched in.
	Changing the displayed basis only reorders the list; ``converted_amount``
	divides by the current basis rate to re-normalize.
	"""

	def rebuild(self, snapshot: RateSnapshot) -> list[Rate]:
		basis = snapshot.basis_currency
		rates = []
		for pair_code, rate in snapshot.quotes.items():
			if pair_code.startswith(basis):
				currency_code = pair_code[len(basis):]
			else:
				# Non-conforming provider key, keep it as the currency code
				currency_code = pair_code
			rates.append(Rate(currency_code=currency_code, rate_relative_to_basis=rate))

		rates.sort(key=lambda r: r.currency_code)
		return [Rate(currency_code=basis, rate_relative_to_basis=BASIS_RATE), *rates]

	def update_with_snapshot(self, state: ConversionState, snapshot: RateSnapshot) -> ConversionState:
		return replace(state, ordered_rates=tuple(self.rebuild(snapshot)))

	def change_basis(self, state: ConversionState, currency_code: str) -> ConversionState:
		basis = state.basis
		if basis is not None and basis.currency_code == currency_code:
			return state

		new_basis = state.find(currency_code)
		if new_basis is None:
			raise InvalidCurrencyError(f"Currency {currency_code} is not in the current rate list")

		others = tuple(r for r in state.ordered_rates if r.currency_code != currency_code)
		return replace(state, ordered_rates=(new_basis, *others))

	def move(self, state: ConversionState, from_index: int, to_index: int) -> ConversionState:
		"""Stable move of one entry; moving to index 0 makes it the basis."""
		count = len(state.ordered_rates)
		if not (0 <= from_index < count and 0 <= to_index < count):
			logger.warning(f"Ignoring move {from_index} -> {to_index} on {count} rates")
			return state
		if from_index == to_index:
			return state

		rates = list(state.ordered_rates)
		rate = rates.pop(from_index)
		rates.insert(to_index, rate)
		return replace(state, ordered_rates=tuple(rates))

	def converted_amount(self, state: ConversionState, amount: Decimal, target_currency: str) -> Decimal:
		basis = state.basis
		if basis is None:
			raise RateStateError("Rates must be loaded before converting")

		target = state.find(target_currency)
		if target is None:
			raise InvalidCurrencyError(f"Currency {target_currency} is not in the current rate list")

		return amount * target.rate_relative_to_basis / basis.rate_relative_to_basis

	def converted_amounts(self, state: ConversionState) -> list[tuple[Rate, Decimal]]:
		return [
			(rate, self.converted_amount(state, state.amount_to_convert, rate.currency_code))
			for rate in state.rates_to_convert
		]

	def search(self, state: ConversionState, text: str) -> list[Rate]:
		needle = text.upper()
		return [r for r in state.rates_to_convert if needle in r.currency_code]

	def set_amount(self, raw_input: str) -> Decimal:
		if raw_input == "":
			return Decimal("0")
		if not AMOUNT_PATTERN.fullmatch(raw_input):
			raise InvalidAmountError(f"'{raw_input}' is not a valid amount")
		return Decimal(raw_input)

	def apply_amount(self, state: ConversionState, raw_input: str) -> ConversionState:
		"""Parses the input into the state, keeping the prior amount on bad input."""
		try:
			amount = self.set_amount(raw_input)
		except InvalidAmountError as e:
			logger.info(f"Rejected amount input: {e}")
			return replace(state, input_error="Please enter a valid number")
		return replace(state, amount_to_convert=amount, input_error="")
