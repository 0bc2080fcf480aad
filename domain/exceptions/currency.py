TRANSPORT_ERROR_CODE = -1


class CurrencyException(Exception):
    pass


class InvalidCurrencyError(CurrencyException):
    pass


class ProviderError(CurrencyException):
    """Classified failure from the rate provider.

    Error objects returned by the provider keep their own code; transport,
    HTTP and decoding failures use TRANSPORT_ERROR_CODE.
    """

    def __init__(self, message: str, code: int = TRANSPORT_ERROR_CODE):
        self.code = code
        self.message = message
        super().__init__(message)


class CacheError(CurrencyException):
    pass


class PersistenceError(CurrencyException):
    pass


class InvalidAmountError(CurrencyException):
    pass


class RateStateError(CurrencyException):
    """Raised when conversion is attempted before any rates are known."""
    pass
