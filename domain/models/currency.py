from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType

from domain.exceptions.currency import InvalidCurrencyError


@dataclass(frozen=True)
class RateSnapshot:
    """One complete set of quotes as returned by the provider.

    Quote keys are provider pair codes such as ``USDJPY``; every value is
    relative to ``basis_currency``.
    """
    observed_at: datetime
    basis_currency: str
    quotes: Mapping[str, Decimal]

    def __post_init__(self):
        object.__setattr__(self, "quotes", MappingProxyType(dict(self.quotes)))
        if self.basis_currency in self.quotes:
            raise InvalidCurrencyError(
                f"Basis currency {self.basis_currency} cannot be quoted against itself"
            )

    @classmethod
    def from_quotes(cls, observed_at: datetime, basis_currency: str, quotes: Mapping[str, object]) -> "RateSnapshot":
        return cls(
            observed_at=observed_at,
            basis_currency=basis_currency,
            quotes={code: Decimal(str(rate)) for code, rate in quotes.items()},
        )


@dataclass(frozen=True)
class Rate:
    currency_code: str
    rate_relative_to_basis: Decimal


@dataclass(frozen=True)
class ConversionState:
    ordered_rates: tuple[Rate, ...] = ()
    amount_to_convert: Decimal = Decimal("0")
    input_error: str = ""

    @property
    def basis(self) -> Rate | None:
        return self.ordered_rates[0] if self.ordered_rates else None

    @property
    def rates_to_convert(self) -> tuple[Rate, ...]:
        return self.ordered_rates[1:]

    def find(self, currency_code: str) -> Rate | None:
        for rate in self.ordered_rates:
            if rate.currency_code == currency_code:
                return rate
        return None


@dataclass(frozen=True)
class ThrottleRecord:
    resource_key: str
    lift_at: datetime | None = field(default=None)

    def is_active(self, now: datetime) -> bool:
        return self.lift_at is not None and now < self.lift_at
