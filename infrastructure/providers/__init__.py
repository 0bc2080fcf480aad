from .base import RateProvider
from .currencylayer import CurrencyLayerProvider

__all__ = ['RateProvider', 'CurrencyLayerProvider']
